import io
import os

from PIL import Image

from bizscan.image_utils import compress_image, detect_mime_type, to_data_url


def encode(img, fmt="PNG"):
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def test_large_image_is_downscaled_to_jpeg():
    noisy = Image.frombytes("RGB", (2400, 1800), os.urandom(2400 * 1800 * 3))
    data = encode(noisy)

    compressed = compress_image(data, max_dimension=1200)

    assert len(compressed) < len(data)
    with Image.open(io.BytesIO(compressed)) as img:
        assert img.format == "JPEG"
        assert max(img.size) == 1200
        assert img.size == (1200, 900)


def test_small_image_is_returned_unchanged():
    data = encode(Image.new("RGB", (100, 80), "white"))
    assert compress_image(data) is data


def test_undecodable_bytes_are_returned_unchanged():
    data = b"definitely not an image" * 100
    assert compress_image(data, threshold_bytes=10) is data


def test_data_url_uses_detected_mime_type():
    png = encode(Image.new("RGB", (10, 10)))
    assert detect_mime_type(png) == "image/png"
    assert to_data_url(png).startswith("data:image/png;base64,")
    assert detect_mime_type(b"garbage") == "image/jpeg"
