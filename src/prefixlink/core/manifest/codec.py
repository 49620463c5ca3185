"""Manifest codec --- the on-disk ``.prefixlink/manifest.json`` format.

Encoding is deterministic: object keys are sorted, lists keep their
declaration order (export and dependency order is significant), and output
ends with a newline. Two equal manifests always encode to byte-identical
files, which is what makes idempotent re-export a plain byte comparison.

Decoding is strict. Anything the reader does not understand --- an unknown
format version, field, export kind, or scope --- raises
``MalformedManifest`` instead of producing a partial manifest.

Schema (format version "1")::

    {
      "format_version": "1",
      "generated_by": "prefixlink",
      "identity": {"name": ..., "spec": ..., "prefix": ...},
      "exports": [{"kind": ..., "value": ..., "scope": ...}, ...],
      "dependencies": [
        {"name": ..., "spec": ..., "prefix": ..., "required_scope": [...]},
        ...
      ]
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from prefixlink.core.manifest.models import (
    DependencyRef,
    ExportEntry,
    ExportKind,
    Manifest,
    PackageIdentity,
    Scope,
)
from prefixlink.exceptions import MalformedManifest

FORMAT_VERSION: str = "1"
GENERATOR: str = "prefixlink"

MANIFEST_DIRNAME: str = ".prefixlink"
MANIFEST_FILENAME: str = "manifest.json"

_TOP_LEVEL_KEYS = frozenset(
    {"format_version", "generated_by", "identity", "exports", "dependencies"}
)
_IDENTITY_KEYS = frozenset({"name", "spec", "prefix"})
_EXPORT_KEYS = frozenset({"kind", "value", "scope"})
_DEPENDENCY_KEYS = _IDENTITY_KEYS | {"required_scope"}

_KINDS = {k.value: k for k in ExportKind}
_SCOPES = {s.value: s for s in Scope}


def manifest_path(prefix: str | Path) -> Path:
    """Return the well-known manifest location beneath an install prefix."""
    return Path(prefix) / MANIFEST_DIRNAME / MANIFEST_FILENAME


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def identity_to_dict(identity: PackageIdentity) -> dict[str, str]:
    return {"name": identity.name, "spec": identity.spec, "prefix": identity.prefix}


def export_to_dict(entry: ExportEntry) -> dict[str, str]:
    return {"kind": entry.kind.value, "value": entry.value, "scope": entry.scope.value}


def dependency_to_dict(ref: DependencyRef) -> dict[str, Any]:
    data: dict[str, Any] = identity_to_dict(ref.identity)
    data["required_scope"] = sorted(s.value for s in ref.required_scope)
    return data


def to_dict(manifest: Manifest) -> dict[str, Any]:
    """Serialize a manifest to a dict matching the schema."""
    return {
        "format_version": FORMAT_VERSION,
        "generated_by": GENERATOR,
        "identity": identity_to_dict(manifest.identity),
        "exports": [export_to_dict(e) for e in manifest.exports],
        "dependencies": [dependency_to_dict(d) for d in manifest.dependencies],
    }


def encode(manifest: Manifest) -> bytes:
    """Encode a manifest to its canonical byte form."""
    text = json.dumps(to_dict(manifest), indent=2, sort_keys=True, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _require_mapping(value: Any, where: str, keys: frozenset[str],
                     optional: frozenset[str] = frozenset()) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedManifest(f"{where} must be an object, got {type(value).__name__}")
    missing = keys - optional - set(value)
    if missing:
        raise MalformedManifest(f"{where} is missing {sorted(missing)}")
    unknown = set(value) - keys
    if unknown:
        raise MalformedManifest(f"{where} has unknown fields {sorted(unknown)}")
    return value


def _require_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise MalformedManifest(f"{where} must be a string, got {type(value).__name__}")
    return value


def _require_list(value: Any, where: str) -> list[Any]:
    if not isinstance(value, list):
        raise MalformedManifest(f"{where} must be a list, got {type(value).__name__}")
    return value


def _token(table: dict[str, Any], value: Any, what: str, where: str) -> Any:
    token = _require_str(value, where)
    try:
        return table[token]
    except KeyError:
        raise MalformedManifest(f"unknown {what} {token!r} in {where}") from None


def identity_from_dict(data: Any, where: str = "identity") -> PackageIdentity:
    obj = _require_mapping(data, where, _IDENTITY_KEYS)
    return _identity_fields(obj, where)


def _identity_fields(obj: dict[str, Any], where: str) -> PackageIdentity:
    try:
        return PackageIdentity(
            name=_require_str(obj["name"], f"{where}.name"),
            spec=_require_str(obj["spec"], f"{where}.spec"),
            prefix=_require_str(obj["prefix"], f"{where}.prefix"),
        )
    except ValueError as exc:
        raise MalformedManifest(f"{where}: {exc}") from exc


def export_from_dict(data: Any, where: str = "export") -> ExportEntry:
    obj = _require_mapping(data, where, _EXPORT_KEYS)
    kind = _token(_KINDS, obj["kind"], "export kind", f"{where}.kind")
    scope = _token(_SCOPES, obj["scope"], "scope", f"{where}.scope")
    try:
        return ExportEntry(kind=kind, value=_require_str(obj["value"], f"{where}.value"),
                           scope=scope)
    except ValueError as exc:
        raise MalformedManifest(f"{where}: {exc}") from exc


def dependency_from_dict(data: Any, where: str = "dependency",
                         default_scope: frozenset[Scope] | None = None) -> DependencyRef:
    """Decode one dependency entry.

    ``default_scope`` is only used for hand-written input files, where
    ``required_scope`` may be omitted or given as a single string. Manifests
    always carry an explicit list.
    """
    optional = frozenset({"required_scope"}) if default_scope is not None else frozenset()
    obj = _require_mapping(data, where, _DEPENDENCY_KEYS, optional=optional)
    identity = _identity_fields(obj, where)
    raw_scopes = obj.get("required_scope")
    if raw_scopes is None and default_scope is not None:
        scopes = default_scope
    else:
        if isinstance(raw_scopes, str) and default_scope is not None:
            raw_scopes = [raw_scopes]
        items = _require_list(raw_scopes, f"{where}.required_scope")
        scopes = frozenset(
            _token(_SCOPES, item, "scope", f"{where}.required_scope[{i}]")
            for i, item in enumerate(items)
        )
    try:
        return DependencyRef(identity=identity, required_scope=scopes)
    except ValueError as exc:
        raise MalformedManifest(f"{where}: {exc}") from exc


def from_dict(data: Any) -> Manifest:
    """Build a manifest from parsed JSON, validating every field."""
    obj = _require_mapping(data, "manifest", _TOP_LEVEL_KEYS)
    version = obj["format_version"]
    if version != FORMAT_VERSION:
        raise MalformedManifest(f"unsupported format_version {version!r}")
    _require_str(obj["generated_by"], "generated_by")

    identity = identity_from_dict(obj["identity"])
    exports = [
        export_from_dict(item, f"exports[{i}]")
        for i, item in enumerate(_require_list(obj["exports"], "exports"))
    ]
    deps = [
        dependency_from_dict(item, f"dependencies[{i}]")
        for i, item in enumerate(_require_list(obj["dependencies"], "dependencies"))
    ]
    try:
        return Manifest(identity=identity, exports=tuple(exports), dependencies=tuple(deps))
    except ValueError as exc:
        raise MalformedManifest(str(exc)) from exc


def decode(data: bytes | str) -> Manifest:
    """Decode manifest bytes (or text).

    Raises:
        MalformedManifest: If the input is not a valid format-"1" manifest.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedManifest(f"not UTF-8: {exc}") from exc
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as exc:
        raise MalformedManifest(f"invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise MalformedManifest("invalid JSON: nesting too deep") from exc
    return from_dict(parsed)


def read_manifest(prefix: str | Path) -> Manifest:
    """Read and decode the manifest stored beneath *prefix*.

    Raises:
        FileNotFoundError: If no manifest exists at the well-known location.
        MalformedManifest: If the file cannot be decoded. The file path is
            attached to the error.
    """
    path = manifest_path(prefix)
    raw = path.read_bytes()
    try:
        return decode(raw)
    except MalformedManifest as exc:
        raise MalformedManifest(exc.reason, path=str(path)) from exc
