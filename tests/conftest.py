import os
import sys

import pytest

# Ensure repository root is on sys.path so `import pbscan.*` works during tests
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from pbscan.models import Draw, NumberSet, WordBox  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    # Keep local .env / shell settings out of the tests
    for name in ("OCR_ENGINE", "TESSERACT_CMD", "MUSL_API_KEY", "PBSCAN_CONFIG", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture()
def winning_draw():
    return Draw(
        draw_date="2025-08-02",
        winning_numbers=NumberSet(white_balls=(12, 23, 34, 45, 56), powerball=7),
        multiplier=3,
        jackpot_amount=0.0,
        source="ny_open_data",
    )


def make_word(text, left, top, width=40, height=20):
    return WordBox(text=text, left=left, top=top, right=left + width, bottom=top + height)


@pytest.fixture()
def word_factory():
    return make_word
