import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portfolio_ledger.config import LedgerSettings  # noqa: E402


@pytest.fixture
def settings() -> LedgerSettings:
    """Settings built from defaults only, independent of the environment."""

    return LedgerSettings(_env_file=None)
