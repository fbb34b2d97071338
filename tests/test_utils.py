"""Tests for shared helpers."""

import pytest

from fleet_models.errors import (
    ApplicationNotFoundError,
    RequestError,
    SupervisorLockedError,
)
from fleet_models.utils import (
    generate_current_service_details,
    get_current_service_details_expand,
    is_id,
    is_no_application_for_key_response,
    normalize_device_os_version,
    treat_as_missing_application,
    with_supervisor_locked_error,
)
from fleet_models.utils.device_os_version import LEGACY_OS_VERSION


class TestIsId:
    """Tests for is_id function."""

    def test_ints(self):
        """Integers should be ids, booleans should not."""
        assert is_id(5)
        assert not is_id(True)
        assert not is_id("5")
        assert not is_id(None)


class TestNormalizeDeviceOsVersion:
    """Tests for normalize_device_os_version function."""

    def test_strips_whitespace(self):
        """Surrounding whitespace should be removed."""
        device = {"os_version": "  balenaOS 2.29.2+rev1 \n"}
        assert normalize_device_os_version(device)["os_version"] == "balenaOS 2.29.2+rev1"

    def test_legacy_empty_version(self):
        """Old devices with an empty version should get the legacy label."""
        device = {"os_version": "", "created_at": "2016-06-01T10:00:00.000Z"}
        assert normalize_device_os_version(device)["os_version"] == LEGACY_OS_VERSION

    def test_recent_empty_version(self):
        """Recent devices with an empty version should keep it empty."""
        device = {"os_version": "", "created_at": "2018-06-01T10:00:00.000Z"}
        assert normalize_device_os_version(device)["os_version"] == ""

    def test_missing_version(self):
        """Devices without a selected version should be left untouched."""
        device = {"id": 1}
        assert normalize_device_os_version(device) == {"id": 1}


def _install(install_id, service_name, install_date, commit=None):
    raw = {
        "id": install_id,
        "status": "Running",
        "download_progress": None,
        "install_date": install_date,
        "image": [
            {
                "id": install_id * 10,
                "is_a_build_of__service": [{"id": 3, "service_name": service_name}],
            }
        ],
    }
    if commit is not None:
        raw["is_provided_by__release"] = [{"id": 9, "commit": commit}]
    return raw


class TestServiceDetails:
    """Tests for current service details helpers."""

    def test_expand_with_release(self):
        """The with-commit expansion should include the release."""
        expand = get_current_service_details_expand(True)
        assert "is_provided_by__release" in expand["image_install"]["$expand"]
        assert expand["image_install"]["$filter"] == {"status": {"$ne": "deleted"}}

    def test_expand_without_release(self):
        """The summary expansion should not include the release."""
        expand = get_current_service_details_expand(False)
        assert "is_provided_by__release" not in expand["image_install"]["$expand"]

    def test_generate_groups_by_service_newest_first(self):
        """Installs should be grouped by service name, newest first."""
        device = {
            "id": 1,
            "image_install": [
                _install(1, "main", "2020-01-01T00:00:00Z", commit="old"),
                _install(2, "main", "2021-01-01T00:00:00Z", commit="new"),
                _install(3, "proxy", "2020-06-01T00:00:00Z", commit="new"),
            ],
            "gateway_download": [_install(4, "main", None)],
        }

        result = generate_current_service_details(device)

        assert "image_install" not in result
        assert "gateway_download" not in result
        assert [i["id"] for i in result["current_services"]["main"]] == [2, 1]
        main = result["current_services"]["main"][0]
        assert main["service_name"] == "main"
        assert main["image_id"] == 20
        assert main["service_id"] == 3
        assert main["commit"] == "new"
        assert "image" not in main
        assert result["current_gateway_downloads"][0]["service_name"] == "main"

    def test_generate_without_release_has_no_commit(self):
        """Summaries should omit the commit when the release was not expanded."""
        device = {"image_install": [_install(1, "main", "2020-01-01T00:00:00Z")]}

        result = generate_current_service_details(device)

        assert "commit" not in result["current_services"]["main"][0]
        assert result["current_gateway_downloads"] == []


class TestResponseRemapping:
    """Tests for error re-mapping context managers."""

    def test_not_found_becomes_application_not_found(self):
        """A 404 should be re-raised as ApplicationNotFoundError."""
        with pytest.raises(ApplicationNotFoundError) as exc_info:
            with treat_as_missing_application("MyApp"):
                raise RequestError(404)

        assert exc_info.value.reference == "MyApp"
        assert isinstance(exc_info.value.__cause__, RequestError)

    def test_other_errors_propagate(self):
        """Non-matching errors should propagate unchanged."""
        with pytest.raises(RequestError) as exc_info:
            with treat_as_missing_application("MyApp"):
                raise RequestError(500)

        assert exc_info.value.status_code == 500

    def test_custom_predicate(self):
        """A custom predicate should select which errors mean 'missing'."""
        error = RequestError(
            500, body="Error: No application found to associate with the api key"
        )
        assert is_no_application_for_key_response(error)

        with pytest.raises(ApplicationNotFoundError):
            with treat_as_missing_application(
                5, predicate=is_no_application_for_key_response
            ):
                raise error

    def test_locked_becomes_supervisor_locked(self):
        """A 423 should be re-raised as SupervisorLockedError."""
        with pytest.raises(SupervisorLockedError) as exc_info:
            with with_supervisor_locked_error():
                raise RequestError(423)

        assert exc_info.value.code == "supervisor_locked"
