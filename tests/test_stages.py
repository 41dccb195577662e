"""Tests for the stage cycle and sequencer."""

import pytest  # type: ignore[import-not-found]

from to_concentrate.core.config import ConfigManager
from to_concentrate.core.stages import Notification, Stage, StageSequencer


class TestStage:
    """Test Stage enum."""

    def test_initial_stage(self) -> None:
        """Test the cycle starts with preparation."""
        assert Stage.initial() is Stage.PREPARATION

    def test_next_cycles_through_all_stages(self) -> None:
        """Test next() visits every stage and wraps around."""
        stage = Stage.initial()
        visited = []
        for _ in range(6):
            visited.append(stage)
            stage = stage.next()

        assert visited == [
            Stage.PREPARATION,
            Stage.CONCENTRATION,
            Stage.RELAXATION,
            Stage.PREPARATION,
            Stage.CONCENTRATION,
            Stage.RELAXATION,
        ]

    def test_title(self) -> None:
        """Test human-readable names."""
        assert Stage.CONCENTRATION.title == "Concentration"


class TestStageSequencer:
    """Test StageSequencer."""

    def test_lookup(self, sequencer: StageSequencer) -> None:
        """Test durations and notifications per stage."""
        assert sequencer.duration(Stage.PREPARATION) == 10
        assert sequencer.duration(Stage.CONCENTRATION) == 20
        assert sequencer.notification(Stage.RELAXATION) == Notification("Relaxation done")
        assert sequencer.next(Stage.RELAXATION) is Stage.PREPARATION

    def test_config_pair(self, sequencer: StageSequencer) -> None:
        """Test config() returns duration and notification together."""
        duration, notification = sequencer.config(Stage.CONCENTRATION)

        assert duration == 20
        assert notification.summary == "Concentration done"
        assert notification.body == "Have a rest"

    def test_missing_stage_rejected(self) -> None:
        """Test every stage must be configured."""
        with pytest.raises(ValueError, match="relaxation"):
            StageSequencer(
                durations={Stage.PREPARATION: 1, Stage.CONCENTRATION: 1},
                notifications={stage: Notification("x") for stage in Stage},
            )

    def test_non_positive_duration_rejected(self) -> None:
        """Test zero durations are invalid."""
        with pytest.raises(ValueError, match="positive"):
            StageSequencer(
                durations={stage: 0 for stage in Stage},
                notifications={stage: Notification("x") for stage in Stage},
            )

    def test_from_config(self, tmp_path) -> None:
        """Test building a sequencer from the default configuration."""
        config = ConfigManager(tmp_path / "config.yml")
        sequencer = StageSequencer.from_config(config)

        assert sequencer.duration(Stage.PREPARATION) == 900
        assert sequencer.duration(Stage.CONCENTRATION) == 2400
        assert sequencer.duration(Stage.RELAXATION) == 600
        assert sequencer.notification(Stage.PREPARATION).summary == "Preparation Stage End"
        assert sequencer.notification(Stage.RELAXATION).body == (
            "Feel energetic now? Let's continue."
        )
