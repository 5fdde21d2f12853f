import os

import pytest
from PIL import Image

from baraya.utils.image_compressor import CompressionPolicy, ImageCompressor


def noise_image(path, size=700, fmt="JPEG", **save_kwargs):
    image = Image.frombytes("RGB", (size, size), os.urandom(size * size * 3))
    image.save(path, format=fmt, **save_kwargs)
    return path


@pytest.fixture
def compressor(tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    return ImageCompressor(output_dir=str(out))


def test_small_image_is_returned_as_is(compressor, tmp_path):
    path = tmp_path / "small.jpg"
    Image.new("RGB", (64, 64), color=(200, 30, 30)).save(path, format="JPEG")

    assert compressor.compress(str(path)) == str(path)
    assert compressor.compress(f"file://{path}") == f"file://{path}"


def test_large_image_shrinks_and_keeps_uri_scheme(compressor, tmp_path):
    source = noise_image(tmp_path / "big.jpg", quality=95)
    original_size = source.stat().st_size
    assert original_size > 200 * 1024

    result = compressor.compress(f"file://{source}", "image/jpeg")

    assert result.startswith("file://")
    result_path = result[len("file://"):]
    assert result_path != str(source)
    assert os.path.getsize(result_path) < original_size
    assert source.exists()


def test_rounds_are_bounded(tmp_path):
    # An unreachable budget still stops after max_rounds
    policy = CompressionPolicy(max_bytes=10, max_rounds=3)
    out = tmp_path / "out"
    out.mkdir()
    source = noise_image(tmp_path / "big.jpg", size=300, quality=95)

    result = ImageCompressor(policy, str(out)).compress(str(source))

    assert os.path.exists(result)
    # Intermediate outputs are cleaned up; at most the final one remains
    assert len(os.listdir(out)) <= 1


def test_png_keeps_png_extension(compressor, tmp_path):
    source = noise_image(tmp_path / "big.png", size=900, fmt="PNG")
    assert source.stat().st_size > 200 * 1024

    result = compressor.compress(str(source), "image/png")

    assert result != str(source)
    assert result.endswith(".png")
    assert os.path.getsize(result) < source.stat().st_size
    with Image.open(result) as image:
        assert image.format == "PNG"


def test_unreadable_image_returns_original(compressor, tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"x" * (300 * 1024))

    assert compressor.compress(str(path)) == str(path)


def test_missing_file_returns_original(compressor, tmp_path):
    missing = str(tmp_path / "nope.jpg")
    assert compressor.compress(missing) == missing


def test_release_deletes_only_the_copy(compressor, tmp_path):
    source = noise_image(tmp_path / "big.jpg", quality=95)
    result = compressor.compress(f"file://{source}")

    compressor.release(f"file://{source}", f"file://{source}")
    assert source.exists()

    compressor.release(result, f"file://{source}")
    assert not os.path.exists(result[len("file://"):])
    assert source.exists()
