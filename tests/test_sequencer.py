"""Tests for StageSequencer."""

import pytest

from kiraquest.classroom import InvalidSessionError, OutOfRangeError, StageSequencer, Transition

from conftest import explainer_block, make_stage


@pytest.fixture
def stages():
    return [make_stage(n, explainer_block()) for n in (1, 2, 3)]


class TestStageSequencer:
    """Stage pointer and advancement rules."""

    def test_starts_on_first_stage(self, stages):
        seq = StageSequencer(stages)
        assert seq.current_index == 0
        assert seq.current_stage.stage_number == 1
        assert seq.position == (1, 3)
        assert seq.remaining_stages == 3

    def test_three_advances_complete_three_stages(self, stages):
        seq = StageSequencer(stages)
        assert seq.advance() == Transition.ADVANCED
        assert seq.advance() == Transition.ADVANCED
        assert not seq.is_complete
        assert seq.advance() == Transition.COMPLETED
        assert seq.is_complete
        assert seq.current_index == len(stages)

    def test_complete_is_terminal(self, stages):
        seq = StageSequencer(stages, current_index=3)
        assert seq.advance() == Transition.ALREADY_COMPLETE
        assert seq.stay() == Transition.ALREADY_COMPLETE
        assert seq.current_index == 3

    def test_stay_keeps_pointer(self, stages):
        seq = StageSequencer(stages, current_index=1)
        assert seq.stay() == Transition.STAYED
        assert seq.current_stage.stage_number == 2

    def test_current_stage_of_complete_raises(self, stages):
        seq = StageSequencer(stages, current_index=3)
        with pytest.raises(OutOfRangeError):
            seq.current_stage

    def test_out_of_range_is_index_error(self, stages):
        seq = StageSequencer(stages, current_index=3)
        with pytest.raises(IndexError):
            seq.current_stage

    def test_position_capped_when_complete(self, stages):
        assert StageSequencer(stages, current_index=3).position == (3, 3)

    @pytest.mark.parametrize("index", [-1, 4])
    def test_invalid_index_rejected(self, stages, index):
        with pytest.raises(InvalidSessionError):
            StageSequencer(stages, current_index=index, session_id="s1")

    def test_single_stage(self):
        seq = StageSequencer([make_stage(1, explainer_block())])
        assert seq.advance() == Transition.COMPLETED
