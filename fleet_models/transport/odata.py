"""OData query compilation and option merging.

This module handles:
- Compiling query shaping options ($filter, $expand, $select, $orderby,
  $top, $skip) into OData query string parameters
- Compiling resource ids (numeric or alternate keys) into resource paths
- Merging default options with caller-supplied overrides

Filters are plain dicts. A key is either a field name or an operator:

    {"app_name": "MyApp"}                      -> app_name eq 'MyApp'
    {"$or": {"app_name": "a", "slug": "b"}}    -> (app_name eq 'a') or (slug eq 'b')
    {"status": {"$ne": "deleted"}}             -> status ne 'deleted'
    {"owner": {"handle": "gh_me"}}             -> owner/handle eq 'gh_me'
    {"user": {"$any": {"$alias": "u", "$expr": {"u": {"id": 1}}}}}
                                               -> user/any(u:u/id eq 1)
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any

from fleet_models.errors import InvalidParameterError

COMPARISON_OPERATORS = {
    "$eq": "eq",
    "$ne": "ne",
    "$gt": "gt",
    "$ge": "ge",
    "$lt": "lt",
    "$le": "le",
}

FUNCTION_OPERATORS = {
    "$startswith": "startswith",
    "$endswith": "endswith",
    "$contains": "contains",
}

LAMBDA_OPERATORS = {"$any": "any", "$all": "all"}

KNOWN_OPTIONS = ("$filter", "$expand", "$select", "$orderby", "$top", "$skip")


def compile_literal(value: Any) -> str:
    """Render a Python value as an OData literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        return f"'{value.isoformat()}'"
    text = str(value).replace("'", "''")
    return f"'{text}'"


def _join_path(prefix: str | None, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


def _wrap_all(parts: list[str], joiner: str) -> str:
    if len(parts) == 1:
        return parts[0]
    return f" {joiner} ".join(f"({part})" for part in parts)


def _compile_operand_list(value: Any, prefix: str | None) -> list[str]:
    if isinstance(value, dict):
        return [compile_filter({key: item}, prefix) for key, item in value.items()]
    if isinstance(value, (list, tuple)):
        return [compile_filter(item, prefix) for item in value]
    raise InvalidParameterError("$filter", value, "expected an object or a list")


def _compile_field(name: str, value: Any, prefix: str | None) -> str:
    path = _join_path(prefix, name)

    if not isinstance(value, dict):
        return f"{path} eq {compile_literal(value)}"

    operators = [key for key in value if key.startswith("$")]
    if not operators:
        # Navigation into a related resource
        return compile_filter(value, path)

    parts: list[str] = []
    for op, operand in value.items():
        if op in COMPARISON_OPERATORS:
            operator = COMPARISON_OPERATORS[op]
            parts.append(f"{path} {operator} {compile_literal(operand)}")
        elif op in FUNCTION_OPERATORS:
            parts.append(f"{FUNCTION_OPERATORS[op]}({path},{compile_literal(operand)})")
        elif op == "$in":
            options = [f"{path} eq {compile_literal(item)}" for item in operand]
            if not options:
                raise InvalidParameterError("$in", operand, "must not be empty")
            parts.append(_wrap_all(options, "or"))
        elif op in LAMBDA_OPERATORS:
            alias = operand.get("$alias")
            expr = operand.get("$expr")
            if not alias or expr is None:
                raise InvalidParameterError(op, operand, "requires $alias and $expr")
            lambda_ = LAMBDA_OPERATORS[op]
            parts.append(f"{path}/{lambda_}({alias}:{compile_filter(expr)})")
        elif op == "$not":
            parts.append(f"not({_compile_field(name, operand, prefix)})")
        else:
            raise InvalidParameterError("$filter", op, "unknown operator")
    return _wrap_all(parts, "and")


def compile_filter(filter_: Any, prefix: str | None = None) -> str:
    """Compile a filter dict into an OData $filter expression.

    Args:
        filter_: Filter object.
        prefix: Navigation path of the enclosing resource, if any.

    Returns:
        OData filter expression.

    Raises:
        InvalidParameterError: If the filter uses an unknown operator.
    """
    if not isinstance(filter_, dict):
        raise InvalidParameterError("$filter", filter_, "expected an object")

    parts: list[str] = []
    for key, value in filter_.items():
        key = str(key)
        if key == "$and":
            parts.append(_wrap_all(_compile_operand_list(value, prefix), "and"))
        elif key == "$or":
            parts.append(_wrap_all(_compile_operand_list(value, prefix), "or"))
        elif key == "$not":
            parts.append(f"not({compile_filter(value, prefix)})")
        elif key.startswith("$"):
            raise InvalidParameterError("$filter", key, "unknown operator")
        else:
            parts.append(_compile_field(key, value, prefix))

    if not parts:
        raise InvalidParameterError("$filter", filter_, "must not be empty")
    return _wrap_all(parts, "and")


def compile_select(select: str | list[str]) -> str:
    """Compile a $select value."""
    if isinstance(select, str):
        return select
    return ",".join(select)


def compile_orderby(orderby: Any) -> str:
    """Compile an $orderby value (string, list, or {field: direction})."""
    if isinstance(orderby, str):
        return orderby
    if isinstance(orderby, dict):
        return ",".join(f"{field} {direction}" for field, direction in orderby.items())
    return ",".join(compile_orderby(item) for item in orderby)


def compile_expand(expand: Any) -> str:
    """Compile an $expand value (relation name, list, or {relation: options})."""
    if isinstance(expand, str):
        return expand
    if isinstance(expand, (list, tuple)):
        return ",".join(compile_expand(item) for item in expand)

    compiled: list[str] = []
    for relation, options in expand.items():
        if not options:
            compiled.append(relation)
            continue
        nested = ";".join(
            f"{key}={value}" for key, value in compile_options(options).items()
        )
        compiled.append(f"{relation}({nested})")
    return ",".join(compiled)


def compile_options(options: dict[str, Any] | None) -> dict[str, str]:
    """Compile query shaping options into query string parameters.

    Args:
        options: Options dict; keys must be among $filter, $expand, $select,
            $orderby, $top and $skip.

    Returns:
        Mapping of OData query parameter names to compiled values.

    Raises:
        InvalidParameterError: If an unknown option is present.
    """
    params: dict[str, str] = {}
    if not options:
        return params

    for key, value in options.items():
        if value is None:
            continue
        if key == "$filter":
            params[key] = compile_filter(value)
        elif key == "$expand":
            params[key] = compile_expand(value)
        elif key == "$select":
            params[key] = compile_select(value)
        elif key == "$orderby":
            params[key] = compile_orderby(value)
        elif key in ("$top", "$skip"):
            params[key] = str(value)
        else:
            raise InvalidParameterError("options", key, "unknown query option")
    return params


def compile_resource_id(id_: Any) -> tuple[str, dict[str, str]]:
    """Compile a resource id into a key segment and parameter aliases.

    Numeric ids are inlined; alternate keys such as ``{"slug": "org/app"}``
    go through parameter aliases so they are URL-encoded as query values.

    Returns:
        Tuple of (key segment including parentheses, alias parameters).
    """
    if isinstance(id_, dict):
        segments = []
        params: dict[str, str] = {}
        for key, value in id_.items():
            segments.append(f"{key}=@{key}")
            params[f"@{key}"] = compile_literal(value)
        return f"({','.join(segments)})", params
    if isinstance(id_, int) and not isinstance(id_, bool):
        return f"({id_})", {}
    return "(@id)", {"@id": compile_literal(id_)}


def normalize_expand(expand: Any) -> dict[str, dict[str, Any]]:
    """Convert any $expand form into a {relation: options} dict."""
    if expand is None:
        return {}
    if isinstance(expand, str):
        relations = [relation.strip() for relation in expand.split(",")]
        return {relation: {} for relation in relations if relation}
    if isinstance(expand, (list, tuple)):
        result: dict[str, dict[str, Any]] = {}
        for item in expand:
            for relation, options in normalize_expand(item).items():
                result[relation] = merge_options(result.get(relation, {}), options)
        return result
    return {relation: dict(options or {}) for relation, options in expand.items()}


def _as_list(select: str | list[str]) -> list[str]:
    if isinstance(select, str):
        return [part.strip() for part in select.split(",") if part.strip()]
    return list(select)


def merge_options(
    defaults: dict[str, Any] | None,
    extras: dict[str, Any] | None,
) -> dict[str, Any]:
    """Merge caller options into default options.

    Filters are composed with ``$and``, expansions are merged per relation
    (recursively), selects are unioned, and scalar options ($orderby, $top,
    $skip) take the caller's value.

    Args:
        defaults: Default options (not modified).
        extras: Caller-supplied options (not modified).

    Returns:
        New merged options dict.

    Raises:
        InvalidParameterError: If extras contain an unknown option.
    """
    result = copy.deepcopy(defaults) if defaults else {}
    if not extras:
        return result

    for key, value in extras.items():
        if key not in KNOWN_OPTIONS:
            raise InvalidParameterError("options", key, "unknown query option")
        if value is None:
            continue

        if key == "$filter":
            if result.get("$filter"):
                result["$filter"] = {"$and": [result["$filter"], copy.deepcopy(value)]}
            else:
                result["$filter"] = copy.deepcopy(value)
        elif key == "$expand":
            merged = normalize_expand(result.get("$expand"))
            for relation, options in normalize_expand(value).items():
                merged[relation] = merge_options(merged.get(relation, {}), options)
            result["$expand"] = merged
        elif key == "$select":
            if "$select" not in result:
                result["$select"] = copy.deepcopy(value)
            elif value == "*" or result["$select"] == "*":
                result["$select"] = "*"
            else:
                selected = _as_list(result["$select"])
                selected.extend(f for f in _as_list(value) if f not in selected)
                result["$select"] = selected
        else:
            result[key] = value

    return result


__all__ = [
    "compile_expand",
    "compile_filter",
    "compile_literal",
    "compile_options",
    "compile_orderby",
    "compile_resource_id",
    "compile_select",
    "merge_options",
    "normalize_expand",
]
