import json

import pytest

from martifact.metadata import (
    ArtifactDepends,
    ArtifactProvides,
    CompatibleDevicesError,
    Files,
    HeaderInfo,
    HeaderInfoV3,
    Info,
    Metadata,
    TypeInfo,
    TypeInfoV3,
    UpdateType,
    ValidationError,
    type_info_depends,
    type_info_provides,
)


@pytest.mark.parametrize(
    "info",
    [
        Info(format="", version=0),
        Info(format="", version=2),
        Info(format="format"),
        Info(),
    ],
)
def test_validate_info_invalid(info):
    with pytest.raises(ValidationError, match="error validating data"):
        info.validate()


def test_validate_info_valid():
    info = Info(format="format", version=2)
    assert info.validate() is None
    assert info.to_dict() == {"format": "format", "version": 2}


ALL_MISSING = (
    "Artifact validation failed with missing arguments: "
    "No Payloads added, No compatible devices listed, No artifact name"
)
NO_DEV_NAME_EMPTY = (
    "Artifact validation failed with missing arguments: "
    "No compatible devices listed, No artifact name, Empty Payload"
)


@pytest.mark.parametrize(
    "hi, message",
    [
        (HeaderInfo(), ALL_MISSING),
        (HeaderInfo(updates=[]), ALL_MISSING),
        (HeaderInfo(updates=[UpdateType(type=None)]), NO_DEV_NAME_EMPTY),
        (HeaderInfo(updates=[UpdateType("update"), UpdateType()]), NO_DEV_NAME_EMPTY),
        (
            HeaderInfo(
                updates=[UpdateType(None), UpdateType("update")],
                compatible_devices=[""],
                artifact_name="id",
            ),
            "Artifact validation failed with missing argument: Empty Payload",
        ),
        (
            HeaderInfo(
                updates=[UpdateType("update"), UpdateType(None)],
                compatible_devices=[""],
                artifact_name="id",
            ),
            "Artifact validation failed with missing argument: Empty Payload",
        ),
        (
            HeaderInfo(updates=[UpdateType("update")], artifact_name="id"),
            "Artifact validation failed with missing argument: No compatible devices listed",
        ),
        (
            HeaderInfo(
                updates=[UpdateType("update")], compatible_devices=[""], artifact_name=""
            ),
            "Artifact validation failed with missing argument: No artifact name",
        ),
    ],
)
def test_validate_header_info_invalid(hi, message):
    with pytest.raises(ValidationError) as excinfo:
        hi.validate()
    assert str(excinfo.value) == message


@pytest.mark.parametrize(
    "updates",
    [
        [UpdateType("update")],
        [UpdateType("update"), UpdateType("update")],
    ],
)
def test_validate_header_info_valid(updates):
    hi = HeaderInfo(updates=updates, compatible_devices=[""], artifact_name="id")
    assert hi.validate() is None
    assert hi.to_dict()["artifact_name"] == "id"


def test_validate_header_info_v3_correct():
    hi = HeaderInfoV3(
        updates=[UpdateType("rootfs-image"), UpdateType("delta")],
        artifact_provides=ArtifactProvides(artifact_name="release-2", artifact_group="group-1"),
        artifact_depends=ArtifactDepends(
            artifact_name=["release-2"], compatible_devices=["vexpress-qemu", "rpi3"]
        ),
    )
    assert hi.validate() is None
    assert hi.artifact_name == "release-2"


@pytest.mark.parametrize(
    "hi, message",
    [
        (
            HeaderInfoV3(),
            "Artifact validation failed with missing arguments: No Payloads added, "
            "Empty Artifact provides",
        ),
        (
            HeaderInfoV3(updates=[UpdateType()], artifact_provides=ArtifactProvides()),
            "Artifact name",
        ),
    ],
)
def test_validate_header_info_v3_invalid(hi, message):
    with pytest.raises(ValidationError) as excinfo:
        hi.validate()
    assert message in str(excinfo.value)


def test_header_info_v3_accessors():
    updates = [UpdateType("rootfs-image")]
    provides = ArtifactProvides(artifact_name="release-1")
    depends = ArtifactDepends(compatible_devices=["vexpress-qemu"])
    hi = HeaderInfoV3(updates, provides, depends)
    assert hi.updates[0].type == "rootfs-image"
    assert hi.compatible_devices == ["vexpress-qemu"]
    assert hi.artifact_depends is depends
    assert hi.artifact_provides is provides
    assert hi.artifact_name == "release-1"


def test_header_info_v3_empty_accessors():
    hi = HeaderInfoV3()
    assert hi.artifact_name == ""
    assert hi.compatible_devices == []


PROVIDES = {"artifact_name": "release-2", "artifact_group": "fix"}


@pytest.mark.parametrize(
    "hi, expected",
    [
        (
            HeaderInfoV3(
                updates=[UpdateType("rootfs-image")],
                artifact_provides=ArtifactProvides("release-2", "fix"),
                artifact_depends=ArtifactDepends(
                    artifact_name=["release-1"], compatible_devices=["vexpress-qemu"]
                ),
            ),
            {
                "payloads": [{"type": "rootfs-image"}],
                "artifact_provides": PROVIDES,
                "artifact_depends": {
                    "artifact_name": ["release-1"],
                    "device_type": ["vexpress-qemu"],
                },
            },
        ),
        (
            HeaderInfoV3(
                updates=[UpdateType("rootfs-image"), UpdateType("delta-image")],
                artifact_provides=ArtifactProvides("release-2", "fix"),
                artifact_depends=ArtifactDepends(
                    artifact_name=["release-1"], compatible_devices=["vexpress-qemu"]
                ),
            ),
            {
                "payloads": [{"type": "rootfs-image"}, {"type": "delta-image"}],
                "artifact_provides": PROVIDES,
                "artifact_depends": {
                    "artifact_name": ["release-1"],
                    "device_type": ["vexpress-qemu"],
                },
            },
        ),
        (
            HeaderInfoV3(
                updates=[UpdateType("rootfs-image"), UpdateType("delta-image")],
                artifact_provides=ArtifactProvides("release-2", "fix"),
                artifact_depends=ArtifactDepends(
                    artifact_name=["release-1"],
                    compatible_devices=["vexpress-qemu", "beaglebone"],
                ),
            ),
            {
                "payloads": [{"type": "rootfs-image"}, {"type": "delta-image"}],
                "artifact_provides": PROVIDES,
                "artifact_depends": {
                    "artifact_name": ["release-1"],
                    "device_type": ["vexpress-qemu", "beaglebone"],
                },
            },
        ),
        (
            HeaderInfoV3(
                updates=[UpdateType("rootfs-image"), UpdateType("delta-image")],
                artifact_provides=ArtifactProvides("release-2", "fix"),
            ),
            {
                "payloads": [{"type": "rootfs-image"}, {"type": "delta-image"}],
                "artifact_provides": PROVIDES,
                "artifact_depends": None,
            },
        ),
    ],
)
def test_marshal_header_info_v3(hi, expected):
    assert json.loads(json.dumps(hi.to_dict())) == expected


def test_header_info_v3_write_round_trip():
    hi = HeaderInfoV3(
        updates=[UpdateType("rootfs-image")],
        artifact_provides=ArtifactProvides("release-2", "fix"),
        artifact_depends=ArtifactDepends(
            artifact_name=["release-1"], compatible_devices=["vexpress-qemu"]
        ),
    )
    data = json.dumps(hi.to_dict()).encode()
    decoded = HeaderInfoV3()
    assert decoded.write(data) == len(data)
    assert decoded == hi


def test_header_info_v3_write_unknown_field():
    with pytest.raises(ValueError, match="unknown field"):
        HeaderInfoV3().write(b'{"payloads": [], "bogus": 1}')


def test_header_info_v3_write_depends_without_devices():
    with pytest.raises(CompatibleDevicesError):
        HeaderInfoV3().write(b'{"artifact_depends": {"artifact_name": ["a"]}}')


def test_artifact_depends_from_dict():
    depends = ArtifactDepends.from_dict({"device_type": ["qemu"], "artifact_group": ["g"]})
    assert depends == ArtifactDepends(compatible_devices=["qemu"], artifact_group=["g"])
    with pytest.raises(CompatibleDevicesError):
        ArtifactDepends.from_dict({"device_type": []})


def test_artifact_provides_from_dict():
    provides = ArtifactProvides.from_dict({"artifact_name": "r1"})
    assert provides.to_dict() == {"artifact_name": "r1"}


@pytest.mark.parametrize("ti", [TypeInfo(), TypeInfo(type="")])
def test_validate_type_info_invalid(ti):
    with pytest.raises(ValidationError, match="TypeInfo requires a type"):
        ti.validate()


def test_validate_type_info_valid():
    ti = TypeInfo(type="rootfs-image")
    assert ti.validate() is None
    assert ti.to_dict() == {"type": "rootfs-image"}


def test_validate_type_info_v3():
    with pytest.raises(ValidationError, match="error validating data"):
        TypeInfoV3(type="").validate()
    ti = TypeInfoV3(type="delta")
    assert ti.validate() is None
    assert ti.to_dict() == {"type": "delta"}


def test_write_type_info_v3():
    ti = TypeInfoV3(type="other")
    data = b'{"type":"delta"}'
    assert ti.write(data) == len(data)
    assert ti.type == "delta"


def test_marshal_type_info_v3():
    ti = TypeInfoV3(
        type="delta",
        artifact_depends={
            "rootfs-image.checksum": "4d480539cdb23a4aee6330ff80673a5af92b7793eb1c57c4694532f96383b619"
        },
        artifact_provides={
            "rootfs-image.checksum": "853jsdfh342789sdflkjsdf987324kljsdf987234kjljsdf987234klsdf987d8"
        },
    )
    assert ti.to_dict() == {
        "type": "delta",
        "artifact_depends": {
            "rootfs-image.checksum": "4d480539cdb23a4aee6330ff80673a5af92b7793eb1c57c4694532f96383b619"
        },
        "artifact_provides": {
            "rootfs-image.checksum": "853jsdfh342789sdflkjsdf987324kljsdf987234kjljsdf987234klsdf987d8"
        },
    }


def test_marshal_type_info_v3_empty_fields():
    assert TypeInfoV3(type="delta").to_dict() == {"type": "delta"}


def test_write_type_info_v3_invalid_depends():
    with pytest.raises(TypeError):
        TypeInfoV3().write(b'{"artifact_depends": {"a": 1}}')


@pytest.mark.parametrize(
    "data, expected",
    [
        ("", {}),
        ('{"key": "val"}', {"key": "val"}),
        (
            '{"key": "val", "other_key": "other_val"}',
            {"key": "val", "other_key": "other_val"},
        ),
    ],
)
def test_validate_metadata(data, expected):
    metadata = Metadata()
    assert metadata.write(data.encode()) == len(data)
    assert metadata.validate() is None
    assert metadata.to_dict() == expected


def test_metadata_rejects_non_object():
    with pytest.raises(ValueError):
        Metadata().write(b"[1, 2]")


@pytest.mark.parametrize("files", [Files([""]), Files(["file", ""])])
def test_validate_files_invalid(files):
    with pytest.raises(ValidationError, match="File in FileList requires a name"):
        files.validate()


@pytest.mark.parametrize(
    "names", [[], ["file"], ["file", "file_next"]]
)
def test_validate_files_valid(names):
    files = Files(names)
    assert files.validate() is None
    assert files.to_dict() == {"files": names}


def test_files_write():
    files = Files()
    data = b'{"files": ["a", "b"]}'
    assert files.write(data) == len(data)
    assert files.file_list == ["a", "b"]


def test_header_info():
    hi = HeaderInfo("release-1", [UpdateType("rootfs-image")], ["vexpress-qemu"])
    assert hi.artifact_name == "release-1"
    assert hi.updates[0].type == "rootfs-image"
    assert hi.compatible_devices[0] == "vexpress-qemu"
    assert hi.artifact_depends is None
    assert hi.artifact_provides is None


def test_header_info_write():
    hi = HeaderInfo()
    data = (
        b'{"artifact_name": "r1", "updates": [{"type": "rootfs-image"}],'
        b' "device_types_compatible": ["qemu"], "extra": true}'
    )
    assert hi.write(data) == len(data)
    assert hi == HeaderInfo("r1", [UpdateType("rootfs-image")], ["qemu"])


def test_header_info_write_requires_devices():
    with pytest.raises(CompatibleDevicesError):
        HeaderInfo().write(b'{"artifact_name": "r1"}')


@pytest.mark.parametrize(
    "value, expected",
    [
        ({"foo": "bar"}, {"foo": "bar"}),
        ({"foo": ["bar", "baz"]}, {"foo": ["bar", "baz"]}),
        ({"foo": "bar", "bar": ["boo", "baz"]}, {"foo": "bar", "bar": ["boo", "baz"]}),
    ],
)
def test_new_type_info_depends_success(value, expected):
    assert type_info_depends(value) == expected


def test_new_type_info_provides_success():
    assert type_info_provides({"foo": "bar"}) == {"foo": "bar"}


@pytest.mark.parametrize(
    "value",
    [
        {"foo": 1},
        {"foo": "bar", "bar": ["boo", "baz"], "baz": 1},
    ],
)
def test_new_type_info_error(value):
    with pytest.raises(TypeError):
        type_info_depends(value)
    with pytest.raises(TypeError):
        type_info_provides(value)


def test_new_type_info_non_mapping():
    with pytest.raises(TypeError, match="Invalid TypeInfo depends type"):
        type_info_depends(["a"])