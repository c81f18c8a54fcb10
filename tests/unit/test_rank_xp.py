"""XP and rank placement."""

import pytest

from pactnexus.progression.rank_xp import compute_rank_xp, goal_xp, locate_rank
from pactnexus.progression.snapshot import GoalSnapshot, RankSnapshot

LADDER = (
    RankSnapshot(id="r1", name="Novice", min_points=0),
    RankSnapshot(id="r2", name="Adept", min_points=150),
    RankSnapshot(id="r3", name="Master", min_points=300),
)


def _goal(gid: str, status: str, potential: int, total: int = 0, validated: int = 0, **kw) -> GoalSnapshot:
    return GoalSnapshot(
        id=gid,
        name=gid,
        status=status,
        potential_score=potential,
        total_steps=total,
        validated_steps=validated,
        **kw,
    )


class TestGoalXP:
    @pytest.mark.parametrize("status", ["fully_completed", "validated"])
    def test_completed_earns_full_potential(self, status):
        assert goal_xp(_goal("g", status, 120, total=4, validated=1)) == 120

    def test_in_progress_partial_credit(self):
        # floor(200 * 3/4 * 0.5)
        assert goal_xp(_goal("g", "in_progress", 200, total=4, validated=3)) == 75

    def test_in_progress_all_steps_done_is_still_half(self):
        assert goal_xp(_goal("g", "in_progress", 100, total=4, validated=4)) == 50

    def test_validated_above_total_is_clamped(self):
        assert goal_xp(_goal("g", "in_progress", 100, total=4, validated=10)) == 50

    def test_zero_total_steps(self):
        assert goal_xp(_goal("g", "in_progress", 100, total=0, validated=0)) == 0
        assert goal_xp(_goal("g", "in_progress", 100, total=0, validated=1)) == 50

    @pytest.mark.parametrize("status", ["not_started", "paused", "failed"])
    def test_inactive_goals_earn_nothing(self, status):
        assert goal_xp(_goal("g", status, 100, total=4, validated=2)) == 0

    def test_habit_gets_no_partial_credit(self):
        habit = _goal("h", "in_progress", 100, total=4, validated=3, goal_type="habit")
        assert goal_xp(habit) == 0

    def test_completed_habit_earns_full(self):
        habit = _goal("h", "fully_completed", 100, goal_type="habit")
        assert goal_xp(habit) == 100


class TestLocateRank:
    def test_exact_threshold_is_reached(self):
        current, nxt = locate_rank(LADDER, 150)
        assert current.name == "Adept"
        assert nxt.name == "Master"

    def test_top_rank_has_no_next(self):
        current, nxt = locate_rank(LADDER, 999)
        assert current.name == "Master"
        assert nxt is None

    def test_below_first_threshold(self):
        ladder = (RankSnapshot(id="r", name="Initiate", min_points=10),)
        current, nxt = locate_rank(ladder, 5)
        assert current is None
        assert nxt.name == "Initiate"

    def test_empty_ladder(self):
        assert locate_rank((), 50) == (None, None)


class TestComputeRankXP:
    def test_mixed_goals(self):
        goals = [
            _goal("a", "fully_completed", 100),
            _goal("b", "in_progress", 200, total=4, validated=3),
            _goal("c", "not_started", 50, total=10),
            _goal("d", "paused", 80, total=2, validated=1),
        ]
        data = compute_rank_xp(LADDER, goals)

        assert data.current_xp == 175
        assert data.total_max_xp == 430
        assert data.current_rank.name == "Adept"
        assert data.next_rank.name == "Master"
        assert data.xp_to_next_rank == 125
        assert data.progress_in_current_rank == pytest.approx(25 / 150 * 100)
        assert data.global_progress == pytest.approx(175 / 430 * 100)

    def test_ranks_sorted_ascending(self):
        data = compute_rank_xp(reversed(LADDER), [])
        assert [r.min_points for r in data.ranks] == [0, 150, 300]

    def test_no_goals(self):
        data = compute_rank_xp(LADDER, [])
        assert data.current_xp == 0
        assert data.total_max_xp == 0
        assert data.global_progress == 0
        assert data.current_rank.name == "Novice"

    def test_no_ranks(self):
        data = compute_rank_xp([], [_goal("a", "fully_completed", 40)])
        assert data.current_rank is None
        assert data.next_rank is None
        assert data.progress_in_current_rank == 0
        assert data.xp_to_next_rank == 0
        assert data.global_progress == 100

    def test_top_rank_progress_is_full(self):
        data = compute_rank_xp(LADDER, [_goal("a", "validated", 400)])
        assert data.current_rank.name == "Master"
        assert data.progress_in_current_rank == 100
        assert data.xp_to_next_rank == 0

    def test_duplicate_thresholds_do_not_divide_by_zero(self):
        ladder = (
            RankSnapshot(id="x", name="Twin A", min_points=0),
            RankSnapshot(id="y", name="Twin B", min_points=0),
            RankSnapshot(id="z", name="Peak", min_points=100),
        )
        data = compute_rank_xp(ladder, [_goal("a", "in_progress", 10, total=1, validated=0)])
        assert data.current_rank.name == "Twin B"
        assert 0 <= data.progress_in_current_rank <= 100

    def test_xp_never_exceeds_max(self):
        goals = [_goal(f"g{i}", "in_progress", 10 * i, total=3, validated=50) for i in range(1, 6)]
        data = compute_rank_xp(LADDER, goals)
        assert 0 <= data.current_xp <= data.total_max_xp
        assert 0 <= data.global_progress <= 100

    def test_completing_a_step_never_lowers_xp(self):
        before = compute_rank_xp(LADDER, [_goal("a", "in_progress", 300, total=5, validated=2)])
        after = compute_rank_xp(LADDER, [_goal("a", "in_progress", 300, total=5, validated=3)])
        done = compute_rank_xp(LADDER, [_goal("a", "fully_completed", 300, total=5, validated=5)])
        assert before.current_xp <= after.current_xp <= done.current_xp
