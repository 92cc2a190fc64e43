import numpy as np
import pandas as pd
import pytest

from tidygrowth import (
    JoinIntegrityError,
    canonical_well,
    merge_design,
    number_replicates,
    split_well,
    summarize_replicates,
)
from tidygrowth.pipeline_utils import well_sort_key


@pytest.fixture
def design() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "well": ["A1", "A2"],
            "Strain": ["X", "blank"],
            "Treatment": ["ctrl", "ctrl"],
        }
    )


def test_merge_excludes_blank_wells(scenario_long: pd.DataFrame, design: pd.DataFrame) -> None:
    merged = merge_design(scenario_long, design, exclude_column="Strain")
    assert merged["well"].tolist() == ["A1", "A1"]
    assert merged["time"].tolist() == [0.0, 0.5]
    assert merged["value"].tolist() == [0.10, 0.15]
    assert merged["Strain"].tolist() == ["X", "X"]
    assert (merged["Strain"] != "blank").all()


def test_merge_without_exclusion_keeps_all_rows(
    scenario_long: pd.DataFrame, design: pd.DataFrame
) -> None:
    merged = merge_design(scenario_long, design, exclude_column=None)
    assert len(merged) == len(scenario_long)
    assert list(merged.columns) == ["time", "well", "value", "Strain", "Treatment"]


def test_merge_accepts_several_sentinels(scenario_long: pd.DataFrame) -> None:
    design = pd.DataFrame({"well": ["A1", "A2"], "Strain": ["empty", "blank"]})
    merged = merge_design(
        scenario_long, design, exclude_column="Strain", exclude_values=["blank", "empty"]
    )
    assert merged.empty


def test_merge_rejects_duplicate_design_wells(scenario_long: pd.DataFrame) -> None:
    design = pd.DataFrame(
        {"well": ["A1", "A1", "A2"], "Strain": ["X", "Y", "blank"]}
    )
    with pytest.raises(JoinIntegrityError) as excinfo:
        merge_design(scenario_long, design, exclude_column="Strain")
    assert excinfo.value.context["duplicates"] == ["A1"]


def test_merge_reports_unmatched_wells(scenario_long: pd.DataFrame) -> None:
    design = pd.DataFrame({"well": ["A1"], "Strain": ["X"]})
    with pytest.raises(JoinIntegrityError) as excinfo:
        merge_design(scenario_long, design, exclude_column="Strain")
    assert excinfo.value.context["unmatched"] == ["A2"]


def test_merge_warns_on_unmatched_when_asked(
    scenario_long: pd.DataFrame, log_messages: list[str]
) -> None:
    design = pd.DataFrame({"well": ["A1"], "Strain": ["X"]})
    merged = merge_design(
        scenario_long, design, exclude_column="Strain", on_unmatched="warn"
    )
    assert len(merged) == 4
    assert merged.loc[merged["well"] == "A2", "Strain"].isna().all()
    assert any("A2" in message for message in log_messages)


def test_merge_canonicalizes_well_labels(scenario_long: pd.DataFrame) -> None:
    design = pd.DataFrame({"well": ["a01", "A02"], "Strain": ["X", "blank"]})
    merged = merge_design(
        scenario_long, design, exclude_column="Strain", canonicalize_wells=True
    )
    assert merged["well"].tolist() == ["A1", "A1"]


def test_merge_requires_key_columns(scenario_long: pd.DataFrame, design: pd.DataFrame) -> None:
    with pytest.raises(KeyError):
        merge_design(scenario_long, design.rename(columns={"well": "Well"}))
    with pytest.raises(KeyError):
        merge_design(scenario_long, design, exclude_column="strain")


def test_merge_does_not_mutate_inputs(scenario_long: pd.DataFrame, design: pd.DataFrame) -> None:
    before = scenario_long.copy()
    merge_design(scenario_long, design, exclude_column="Strain", canonicalize_wells=True)
    pd.testing.assert_frame_equal(scenario_long, before)


def test_well_label_helpers() -> None:
    assert split_well(" b07 ") == ("B", 7)
    assert canonical_well("h12") == "H12"
    with pytest.raises(ValueError):
        split_well("7B")
    assert sorted(["A10", "A2", "B1", "A1"], key=well_sort_key) == ["A1", "A2", "A10", "B1"]


@pytest.fixture
def replicated() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "time": [0.0, 0.0, 0.0, 0.5, 0.5, 0.5],
            "well": ["A1", "A2", "B1", "A1", "A2", "B1"],
            "value": [0.1, 0.2, 0.3, 0.2, 0.4, 0.5],
            "strain": ["X", "X", "Y", "X", "X", "Y"],
            "treatment": ["ctrl"] * 6,
        }
    )


def test_number_replicates_within_group_and_time(replicated: pd.DataFrame) -> None:
    numbered = number_replicates(replicated, by=["strain", "treatment"])
    assert numbered["replicate"].tolist() == [1, 2, 1, 1, 2, 1]
    assert "replicate" not in replicated.columns


def test_number_replicates_requires_columns(replicated: pd.DataFrame) -> None:
    with pytest.raises(KeyError):
        number_replicates(replicated, by="medium")


def test_summarize_replicates(replicated: pd.DataFrame) -> None:
    summary = summarize_replicates(replicated, by="strain")
    x_late = summary[(summary["strain"] == "X") & (summary["time"] == 0.5)].iloc[0]
    assert x_late["mean"] == pytest.approx(0.3)
    assert x_late["sd"] == pytest.approx(np.std([0.2, 0.4], ddof=1))
    assert x_late["n"] == 2
    y_early = summary[(summary["strain"] == "Y") & (summary["time"] == 0.0)].iloc[0]
    assert y_early["n"] == 1
    assert np.isnan(y_early["sd"])


def test_merge_reports_invalid_labels_when_canonicalizing(scenario_long: pd.DataFrame) -> None:
    design = pd.DataFrame(
        {"well": ["A1", "A2", np.nan, "plate"], "Strain": ["X", "blank", np.nan, "Y"]}
    )
    with pytest.raises(JoinIntegrityError) as excinfo:
        merge_design(
            scenario_long, design, exclude_column="Strain", canonicalize_wells=True
        )
    assert excinfo.value.context["table"] == "design"
    assert excinfo.value.context["invalid"] == [None, "plate"]
