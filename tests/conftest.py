from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest
from loguru import logger

SCENARIO_CSV = """file,time,temp,A1,A2
run.txt,00:00:00,30.1,0.10,0.12
run.txt,00:30:00,30.0,0.15,NA
,,,,
,,,,
"""

DESIGN_CSV = """well,strain,treatment
A1,X,ctrl
A2,blank,ctrl
"""


@pytest.fixture
def scenario_path(tmp_path: Path) -> Path:
    path = tmp_path / "plate.csv"
    path.write_text(SCENARIO_CSV)
    return path


@pytest.fixture
def design_path(tmp_path: Path) -> Path:
    path = tmp_path / "design.csv"
    path.write_text(DESIGN_CSV)
    return path


@pytest.fixture
def scenario_long() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "time": [0.0, 0.0, 0.5, 0.5],
            "well": ["A1", "A2", "A1", "A2"],
            "value": [0.10, 0.12, 0.15, float("nan")],
        }
    )


@pytest.fixture
def log_messages():
    """Collect loguru records at WARNING and above."""
    messages: list[str] = []
    handler_id = logger.add(lambda msg: messages.append(str(msg)), level="WARNING")
    yield messages
    logger.remove(handler_id)
