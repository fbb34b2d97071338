"""Flattening of expanded device service installs.

A device expanded with ``get_current_service_details_expand`` carries raw
``image_install`` and ``gateway_download`` lists, each nesting the image and
the service it builds. ``generate_current_service_details`` turns these into:

    device["current_services"] = {
        "main": [{"id": 1, "service_id": 3, "image_id": 7, "service_name": "main",
                  "status": "Running", "install_date": "...", "commit": "abc"}],
    }
    device["current_gateway_downloads"] = [...]

``commit`` is only present when the release was expanded.
"""

from __future__ import annotations

from typing import Any

from fleet_models.types import Record


def _service_image_expand() -> dict[str, Any]:
    return {
        "image": {
            "$select": ["id"],
            "$expand": {
                "is_a_build_of__service": {"$select": ["id", "service_name"]},
            },
        },
    }


def get_current_service_details_expand(expand_release: bool) -> dict[str, Any]:
    """Build the $expand needed for current service details.

    Args:
        expand_release: Also expand the release each install belongs to,
            so that the summaries include its commit.

    Returns:
        $expand options for a device query.
    """
    install_expand = _service_image_expand()
    if expand_release:
        install_expand["is_provided_by__release"] = {"$select": ["id", "commit"]}

    return {
        "image_install": {
            "$select": ["id", "download_progress", "status", "install_date"],
            "$filter": {"status": {"$ne": "deleted"}},
            "$expand": install_expand,
        },
        "gateway_download": {
            "$select": ["id", "download_progress", "status"],
            "$filter": {"status": {"$ne": "deleted"}},
            "$expand": _service_image_expand(),
        },
    }


def _install_summary(raw: Record) -> Record:
    image = raw["image"][0]
    service = image["is_a_build_of__service"][0]

    summary = {
        key: value
        for key, value in raw.items()
        if key not in ("image", "is_provided_by__release", "installs__image")
    }
    summary["service_name"] = service["service_name"]
    summary["image_id"] = image["id"]
    summary["service_id"] = service["id"]

    releases = raw.get("is_provided_by__release")
    if releases:
        summary["commit"] = releases[0].get("commit")
    return summary


def generate_current_service_details(device: Record) -> Record:
    """Replace raw install expansions with per-service summaries, in place.

    Args:
        device: Device expanded with ``get_current_service_details_expand``.

    Returns:
        The same device record.
    """
    installs = [
        _install_summary(raw) for raw in device.pop("image_install", None) or []
    ]
    downloads = [
        _install_summary(raw) for raw in device.pop("gateway_download", None) or []
    ]

    current_services: dict[str, list[Record]] = {}
    for install in installs:
        current_services.setdefault(install["service_name"], []).append(install)
    for service_installs in current_services.values():
        service_installs.sort(key=lambda i: i.get("install_date") or "", reverse=True)

    device["current_services"] = current_services
    device["current_gateway_downloads"] = downloads
    return device


__all__ = ["generate_current_service_details", "get_current_service_details_expand"]
