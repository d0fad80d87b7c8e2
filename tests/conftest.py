import io
import os
import random

import pytest
from PIL import Image


# Keep tests independent from a developer's .env
os.environ.setdefault("OPENAI_API_KEY", "")
os.environ.setdefault("LOG_JSON", "false")


def _encode(img: Image.Image, fmt: str) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image():
    """Factory for in-memory test images.

    ``noisy=True`` fills the image with random pixels so JPEG cannot compress
    it well; useful to force the quality ladder.
    """

    def _make(
        width: int = 64,
        height: int = 48,
        *,
        mode: str = "RGB",
        fmt: str = "PNG",
        noisy: bool = False,
        seed: int = 1234,
    ) -> bytes:
        if noisy:
            rng = random.Random(seed)
            channels = len(mode)
            raw = bytes(rng.getrandbits(8) for _ in range(width * height * channels))
            img = Image.frombytes(mode, (width, height), raw)
        else:
            color = (200, 120, 40, 128) if mode == "RGBA" else (200, 120, 40)
            img = Image.new(mode, (width, height), color)
        return _encode(img, fmt)

    return _make


@pytest.fixture
def sample_answer() -> str:
    return (
        "Here you go:\n"
        '[{"name": "Osso Buco", "definition": "Braised veal shank"},'
        ' {"name": "麻婆豆腐 (Mapo Tofu)", "definition": "Spicy Sichuan tofu"}]\n'
        "Hope that helps!"
    )
