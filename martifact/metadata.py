"""Artifact metadata records and their JSON encoding."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

_VALIDATION_CAUSE = "error validating data"
_MISSING_PREFIX = "Artifact validation failed with missing argument"
_DECODER = json.JSONDecoder()


class ValidationError(ValueError):
    """Raised when metadata is incomplete or invalid."""


class CompatibleDevicesError(ValueError):
    """Raised when a depends section lists no compatible devices."""

    def __init__(
        self,
        message: str = "ArtifactDepends: Required field 'CompatibleDevices' not found",
    ) -> None:
        super().__init__(message)


def _invalid(message: str) -> ValidationError:
    return ValidationError(f"{message}: {_VALIDATION_CAUSE}")


def _missing_arguments(missing: list[str]) -> ValidationError | None:
    if not missing:
        return None
    prefix = _MISSING_PREFIX + ("s" if len(missing) > 1 else "")
    return ValidationError(f"{prefix}: " + ", ".join(missing))


def _decode_object(data: bytes, allowed: set[str] | None = None) -> dict | None:
    """Decode the first JSON value in ``data`` as an object.

    Returns None for empty input or JSON null. Keys outside ``allowed``
    are rejected when ``allowed`` is given.
    """
    if not data:
        return None
    text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)
    value, _ = _DECODER.raw_decode(text.lstrip())
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(
            f"json: cannot unmarshal {type(value).__name__} into an object"
        )
    _check_fields(value, allowed)
    return value


def _check_fields(obj: Mapping, allowed: set[str] | None) -> None:
    if allowed is None:
        return
    unknown = sorted(set(obj) - allowed)
    if unknown:
        raise ValueError(f'json: unknown field "{unknown[0]}"')


def _as_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"json: field {name!r} must be a string")
    return value


def _as_optional_str(value: Any, name: str) -> str | None:
    if value is None:
        return None
    return _as_str(value, name)


def _as_int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"json: field {name!r} must be an integer")
    return value


def _as_str_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"json: field {name!r} must be a list of strings")
    return list(value)


@dataclass
class Info:
    """Format and version of an artifact archive."""

    format: str = ""
    version: int = 0

    def validate(self) -> None:
        if not self.format or self.version == 0:
            raise _invalid("Artifact Info needs a format type and a version")

    def to_dict(self) -> dict[str, Any]:
        return {"format": self.format, "version": self.version}

    def write(self, data: bytes) -> int:
        obj = _decode_object(data, {"format", "version"})
        if obj is not None:
            if obj.get("format") is not None:
                self.format = _as_str(obj["format"], "format")
            if obj.get("version") is not None:
                self.version = _as_int(obj["version"], "version")
        return len(data)


@dataclass
class UpdateType:
    """The type of one payload; None marks an empty payload."""

    type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}

    @classmethod
    def _from_json(cls, value: Any, strict: bool) -> UpdateType:
        if value is None:
            return cls()
        if not isinstance(value, dict):
            raise ValueError("json: payload entry must be an object")
        _check_fields(value, {"type"} if strict else None)
        return cls(type=_as_optional_str(value.get("type"), "type"))


def _updates_from_json(value: Any, strict: bool) -> list[UpdateType]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("json: payloads must be a list")
    return [UpdateType._from_json(item, strict) for item in value]


@dataclass
class ArtifactDepends:
    """What an artifact requires of the device it is installed on."""

    artifact_name: list[str] = field(default_factory=list)
    compatible_devices: list[str] = field(default_factory=list)
    artifact_group: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.artifact_name:
            out["artifact_name"] = list(self.artifact_name)
        if self.compatible_devices:
            out["device_type"] = list(self.compatible_devices)
        if self.artifact_group:
            out["artifact_group"] = list(self.artifact_group)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ArtifactDepends:
        if not isinstance(data, Mapping):
            raise ValueError("json: artifact_depends must be an object")
        devices = _as_str_list(data.get("device_type"), "device_type")
        if not devices:
            raise CompatibleDevicesError()
        return cls(
            artifact_name=_as_str_list(data.get("artifact_name"), "artifact_name"),
            compatible_devices=devices,
            artifact_group=_as_str_list(data.get("artifact_group"), "artifact_group"),
        )


@dataclass
class ArtifactProvides:
    """What an artifact provides once installed."""

    artifact_name: str = ""
    artifact_group: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"artifact_name": self.artifact_name}
        if self.artifact_group:
            out["artifact_group"] = self.artifact_group
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ArtifactProvides:
        if not isinstance(data, Mapping):
            raise ValueError("json: artifact_provides must be an object")
        _check_fields(data, {"artifact_name", "artifact_group"})
        return cls(
            artifact_name=_as_str(data.get("artifact_name"), "artifact_name"),
            artifact_group=_as_str(data.get("artifact_group"), "artifact_group"),
        )


@dataclass
class HeaderInfo:
    """Header information of a version 2 artifact."""

    artifact_name: str = ""
    updates: list[UpdateType] = field(default_factory=list)
    compatible_devices: list[str] = field(default_factory=list)
    # Version 2 headers carry no depends or provides sections.
    _depends: ArtifactDepends | None = field(
        default=None, init=False, repr=False, compare=False
    )
    _provides: ArtifactProvides | None = field(
        default=None, init=False, repr=False, compare=False
    )

    @property
    def artifact_depends(self) -> ArtifactDepends | None:
        return self._depends

    @property
    def artifact_provides(self) -> ArtifactProvides | None:
        return self._provides

    def validate(self) -> None:
        missing = []
        if not self.updates:
            missing.append("No Payloads added")
        if not self.compatible_devices:
            missing.append("No compatible devices listed")
        if not self.artifact_name:
            missing.append("No artifact name")
        if any(update == UpdateType() for update in self.updates):
            missing.append("Empty Payload")
        error = _missing_arguments(missing)
        if error is not None:
            raise error

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact_name": self.artifact_name,
            "updates": [update.to_dict() for update in self.updates],
            "device_types_compatible": list(self.compatible_devices),
        }

    def write(self, data: bytes) -> int:
        obj = _decode_object(data)
        if obj is not None:
            devices = _as_str_list(
                obj.get("device_types_compatible"), "device_types_compatible"
            )
            if not devices:
                raise CompatibleDevicesError()
            self.artifact_name = _as_str(obj.get("artifact_name"), "artifact_name")
            self.updates = _updates_from_json(obj.get("updates"), strict=False)
            self.compatible_devices = devices
        return len(data)


@dataclass
class HeaderInfoV3:
    """Header information of a version 3 artifact."""

    updates: list[UpdateType] = field(default_factory=list)
    artifact_provides: ArtifactProvides | None = None
    artifact_depends: ArtifactDepends | None = None

    @property
    def artifact_name(self) -> str:
        if self.artifact_provides is None:
            return ""
        return self.artifact_provides.artifact_name

    @property
    def compatible_devices(self) -> list[str]:
        if self.artifact_depends is None:
            return []
        return self.artifact_depends.compatible_devices

    def validate(self) -> None:
        missing = []
        # The payload signature lives in the metadata, so one is required.
        if not self.updates:
            missing.append("No Payloads added")
        if self.artifact_provides is None:
            missing.append("Empty Artifact provides")
        elif not self.artifact_provides.artifact_name:
            missing.append("Artifact name")
        error = _missing_arguments(missing)
        if error is not None:
            raise error

    def to_dict(self) -> dict[str, Any]:
        return {
            "payloads": [update.to_dict() for update in self.updates],
            "artifact_provides": (
                self.artifact_provides.to_dict()
                if self.artifact_provides is not None
                else None
            ),
            "artifact_depends": (
                self.artifact_depends.to_dict()
                if self.artifact_depends is not None
                else None
            ),
        }

    def write(self, data: bytes) -> int:
        obj = _decode_object(data, {"payloads", "artifact_provides", "artifact_depends"})
        if obj is not None:
            if obj.get("payloads") is not None:
                self.updates = _updates_from_json(obj["payloads"], strict=True)
            if "artifact_provides" in obj:
                provides = obj["artifact_provides"]
                self.artifact_provides = (
                    None if provides is None else ArtifactProvides.from_dict(provides)
                )
            if "artifact_depends" in obj:
                depends = obj["artifact_depends"]
                self.artifact_depends = (
                    None if depends is None else ArtifactDepends.from_dict(depends)
                )
        return len(data)


@dataclass
class TypeInfo:
    """The type of an individual update."""

    type: str = ""

    def validate(self) -> None:
        if not self.type:
            raise _invalid("TypeInfo requires a type")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}

    def write(self, data: bytes) -> int:
        obj = _decode_object(data, {"type"})
        if obj is not None and obj.get("type") is not None:
            self.type = _as_str(obj["type"], "type")
        return len(data)


DependsValue = Union[str, list[str]]


def type_info_depends(value: Any) -> dict[str, DependsValue]:
    """Normalise a mapping whose values are strings or lists of strings."""
    if not isinstance(value, Mapping):
        raise TypeError(f"Invalid TypeInfo depends type: {type(value).__name__}")
    result: dict[str, DependsValue] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise TypeError(f"Invalid TypeInfo depends key: {key!r}")
        if isinstance(item, str):
            result[key] = item
        elif isinstance(item, (list, tuple)) and all(isinstance(v, str) for v in item):
            result[key] = list(item)
        else:
            raise TypeError(
                f"Invalid TypeInfo depends type: {type(item).__name__}, with value {item!r}"
            )
    return result


def type_info_provides(value: Any) -> dict[str, str]:
    """Normalise a mapping whose values are strings."""
    if not isinstance(value, Mapping):
        raise TypeError(f"Invalid TypeInfo provides type: {type(value).__name__}")
    result: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise TypeError(f"Invalid TypeInfo provides key: {key!r}")
        if not isinstance(item, str):
            raise TypeError(
                f"Invalid TypeInfo provides type: {type(item).__name__}, with value {item!r}"
            )
        result[key] = item
    return result


@dataclass
class TypeInfoV3:
    """Type, depends and provides of an update in a version 3 header."""

    type: str | None = None
    artifact_depends: dict[str, DependsValue] | None = None
    artifact_provides: dict[str, str] | None = None
    clears_artifact_provides: list[str] | None = None

    def validate(self) -> None:
        if self.type is not None and self.type == "":
            raise _invalid("TypeInfoV3: ")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type}
        if self.artifact_depends:
            out["artifact_depends"] = dict(self.artifact_depends)
        if self.artifact_provides:
            out["artifact_provides"] = dict(self.artifact_provides)
        if self.clears_artifact_provides:
            out["clears_artifact_provides"] = list(self.clears_artifact_provides)
        return out

    def write(self, data: bytes) -> int:
        obj = _decode_object(
            data,
            {"type", "artifact_depends", "artifact_provides", "clears_artifact_provides"},
        )
        if obj is not None:
            if "type" in obj:
                self.type = _as_optional_str(obj["type"], "type")
            if "artifact_depends" in obj:
                depends = obj["artifact_depends"]
                self.artifact_depends = (
                    None if depends is None else type_info_depends(depends)
                )
            if "artifact_provides" in obj:
                provides = obj["artifact_provides"]
                self.artifact_provides = (
                    None if provides is None else type_info_provides(provides)
                )
            if obj.get("clears_artifact_provides") is not None:
                self.clears_artifact_provides = _as_str_list(
                    obj["clears_artifact_provides"], "clears_artifact_provides"
                )
        return len(data)


class Metadata(dict):
    """User-defined metadata; any JSON object is accepted."""

    def validate(self) -> None:
        """Check that the metadata forms a JSON object with string keys."""
        bad = [key for key in self if not isinstance(key, str)]
        if bad:
            raise _invalid(f"Metadata keys must be strings, got {bad[0]!r}")

    def to_dict(self) -> dict[str, Any]:
        return dict(self)

    def write(self, data: bytes) -> int:
        obj = _decode_object(data)
        if obj is not None:
            self.update(obj)
        return len(data)


@dataclass
class Files:
    """File names making up the payload of an update."""

    file_list: list[str] = field(default_factory=list)

    def validate(self) -> None:
        if any(not name for name in self.file_list):
            raise _invalid("File in FileList requires a name")

    def to_dict(self) -> dict[str, Any]:
        return {"files": list(self.file_list)}

    def write(self, data: bytes) -> int:
        obj = _decode_object(data, {"files"})
        if obj is not None and obj.get("files") is not None:
            self.file_list = _as_str_list(obj["files"], "files")
        return len(data)