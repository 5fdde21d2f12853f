import pytest

from baraya.utils.multipart import MultipartRequest, extension_for, uri_to_path


def test_uri_to_path():
    assert uri_to_path("file:///tmp/a.jpg") == "/tmp/a.jpg"
    assert uri_to_path("/tmp/a.jpg") == "/tmp/a.jpg"


@pytest.mark.parametrize("mime, ext", [
    ("image/png", ".png"),
    ("image/webp", ".webp"),
    ("image/jpeg", ".jpg"),
    ("image/heic", ".jpg"),
    (None, ".jpg"),
])
def test_extension_for(mime, ext):
    assert extension_for(mime) == ext


def test_fields_skip_none_and_stringify():
    form = MultipartRequest().add_field("latitude", -6.9).add_field("dinasId", None)
    assert form.fields == {"latitude": "-6.9"}


def test_same_file_field_is_replaced(tmp_path):
    form = MultipartRequest()
    form.add_file("foto", str(tmp_path / "a.jpg"), "a.jpg")
    form.add_file("foto", f"file://{tmp_path / 'b.jpg'}", "b.jpg")

    assert len(form.files) == 1
    assert form.files[0].path == str(tmp_path / "b.jpg")
    assert form.has_file("foto")
    assert not form.has_file("avatar")


def test_open_parts_opens_and_closes(tmp_path):
    photo = tmp_path / "a.png"
    photo.write_bytes(b"png-bytes")
    form = MultipartRequest().add_field("pesan", "x").add_file("foto", str(photo), "a.png", "image/png")

    with form.open_parts() as (data, files):
        filename, handle, content_type = files["foto"]
        assert data == {"pesan": "x"}
        assert (filename, content_type) == ("a.png", "image/png")
        assert handle.read() == b"png-bytes"

    assert handle.closed


def test_open_parts_missing_file(tmp_path):
    form = MultipartRequest().add_file("foto", str(tmp_path / "missing.jpg"), "missing.jpg")

    with pytest.raises(FileNotFoundError):
        with form.open_parts():
            pass
