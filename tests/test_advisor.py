"""Tests for the advisor entrypoints over an in-memory snapshot."""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from placement_advisor.config import ALL_DAYS, AdvisorConfig, SchedulingPolicy
from placement_advisor.domain.snapshot import InMemorySnapshot
from placement_advisor.domain.types import (
    AvailabilityException,
    CandidateSlot,
    DueSoonPlacementRequest,
    JobToPlace,
    MoveJobRequest,
    PreviousScheduleReference,
    ScheduleEntry,
    ScoreBreakdown,
    Technician,
)
from placement_advisor.engine.advisor import PlacementAdvisor
from placement_advisor.errors import AdvisorError, AdvisorValidationError, RecordNotFoundError, StaleSuggestionError


def _utc(day, hour=9, minute=0):
    return datetime(2024, 6, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def snapshot():
    technicians = [
        Technician("t1", "Alex Reed"),
        Technician("t2", "Sam Ortiz"),
        Technician("t3", "Kim Lee"),
    ]
    schedules = [
        ScheduleEntry("sch-1", ("t1", "t2"), _utc(5), 3.0, location="1 Main St", job_title="Window wash"),
        ScheduleEntry("sch-2", ("t3",), _utc(5, 13), 2.0, location="9 Oak Ave", job_title="Gutters"),
    ]
    jobs = [
        JobToPlace("job-a", "Gutter clean", "4 Pine Rd", 2.0, date(2024, 6, 4)),
        JobToPlace(
            "job-b", "Pressure wash", "7 Birch Ln", 3.0, date(2024, 6, 6),
            invoice_ref="INV-7",
            previous_schedule=PreviousScheduleReference(_utc(1), ("t1",), 3.0),
        ),
        JobToPlace("job-c", "Roof rinse", "2 Cedar Ct", 4.0, date(2024, 6, 3)),
    ]
    return InMemorySnapshot(technicians, schedules, jobs)


@pytest.fixture
def advisor(snapshot, all_days_config):
    return PlacementAdvisor(snapshot, all_days_config)


def _due_soon(job_ids, **kwargs):
    kwargs.setdefault("date_from", "2024-06-01")
    kwargs.setdefault("date_to", "2024-06-10")
    return DueSoonPlacementRequest(job_ids=tuple(job_ids), **kwargs)


def _move(**kwargs):
    kwargs.setdefault("schedule_id", "sch-1")
    kwargs.setdefault("date_from", "2024-06-03")
    kwargs.setdefault("date_to", "2024-06-07")
    return MoveJobRequest(**kwargs)


# Due-soon placement

def test_due_soon_returns_request_order_and_skips_unknown(advisor):
    result = advisor.analyze_due_soon_placement(_due_soon(["job-b", "nope", "job-a", "job-b"]))
    assert [s.job_id for s in result.suggestions] == ["job-b", "job-a"]
    assert all(len(s.candidates) == 5 for s in result.suggestions)


def test_due_soon_hard_policy_prefers_earliest_clear_date(advisor):
    result = advisor.analyze_due_soon_placement(_due_soon(["job-a"], due_policy="hard"))
    top = result.suggestions[0].candidates[0]
    assert top.date == date(2024, 6, 1)
    assert top.technician_ids == ("t1",)
    assert top.technician_names == ("Alex Reed",)
    assert top.start == _utc(1, 9)


def test_due_soon_attaches_previous_schedule_names(advisor):
    suggestion = advisor.analyze_due_soon_placement(_due_soon(["job-b"])).suggestions[0]
    assert suggestion.previous_schedule.technician_names == ("Alex Reed",)
    payload = suggestion.as_dict()
    assert payload["previousSchedule"]["technicianNames"] == ["Alex Reed"]
    assert payload["invoiceRef"] == "INV-7"
    assert payload["noViableSlot"] is False


def test_due_soon_no_viable_slot(snapshot):
    # weekday-only policy over a weekend window
    advisor = PlacementAdvisor(snapshot, AdvisorConfig())
    result = advisor.analyze_due_soon_placement(_due_soon(["job-a"], date_from="2024-06-01", date_to="2024-06-02"))
    suggestion = result.suggestions[0]
    assert suggestion.candidates == ()
    assert suggestion.no_viable_slot
    assert suggestion.as_dict()["noViableSlot"] is True


def test_due_soon_unavailable_technician_excluded(all_days_config):
    techs = [Technician("t1", "Alex Reed", exceptions=(
        AvailabilityException("t1", is_recurring=False, is_full_day=True, specific_date=date(2024, 6, 1)),
    ))]
    snap = InMemorySnapshot(techs, [], [JobToPlace("job-a", "Gutter clean", "4 Pine Rd", 2.0, date(2024, 6, 10))])
    result = PlacementAdvisor(snap, all_days_config).analyze_due_soon_placement(_due_soon(["job-a"]))
    assert date(2024, 6, 1) not in {c.date for c in result.suggestions[0].candidates}


def test_due_soon_is_idempotent(advisor):
    request = _due_soon(["job-a", "job-b", "job-c"], crew_size=2)
    assert advisor.analyze_due_soon_placement(request) == advisor.analyze_due_soon_placement(request)


def test_due_soon_parallel_matches_serial(snapshot, all_days_config):
    request = _due_soon(["job-c", "job-a", "job-b"])
    serial = PlacementAdvisor(snapshot, all_days_config).analyze_due_soon_placement(request)
    parallel = PlacementAdvisor(snapshot, all_days_config, workers=3).analyze_due_soon_placement(request)
    assert [s.job_id for s in parallel.suggestions] == ["job-c", "job-a", "job-b"]
    assert parallel == serial


def test_due_soon_respects_technician_filter(advisor):
    result = advisor.analyze_due_soon_placement(_due_soon(["job-a"], technician_ids=("t2", "t3")))
    assert all(c.technician_ids[0] in {"t2", "t3"} for c in result.suggestions[0].candidates)


def test_due_soon_max_candidates(advisor):
    result = advisor.analyze_due_soon_placement(_due_soon(["job-a"], max_candidates=2))
    assert len(result.suggestions[0].candidates) == 2


def test_due_soon_empty_roster_has_no_viable_slot(all_days_config):
    job = JobToPlace("job-a", "Gutter clean", "4 Pine Rd", 2.0, date(2024, 6, 4))
    advisor = PlacementAdvisor(InMemorySnapshot([], [], [job]), all_days_config)
    suggestion = advisor.analyze_due_soon_placement(_due_soon(["job-a"])).suggestions[0]
    assert suggestion.job_id == "job-a"
    assert suggestion.candidates == ()
    assert suggestion.no_viable_slot


def test_due_soon_unknown_technician_filter_has_no_viable_slot(advisor):
    result = advisor.analyze_due_soon_placement(_due_soon(["job-a"], technician_ids=("zz",)))
    assert result.suggestions[0].no_viable_slot


def test_due_soon_crew_clamped_to_pool(advisor):
    result = advisor.analyze_due_soon_placement(_due_soon(["job-a"], technician_ids=("t1",), crew_size=2))
    candidates = result.suggestions[0].candidates
    assert candidates
    assert all(c.technician_ids == ("t1",) for c in candidates)


def test_bad_window_rejected(advisor):
    with pytest.raises(AdvisorValidationError):
        advisor.analyze_due_soon_placement(_due_soon(["job-a"], date_from="2024-06-10", date_to="2024-06-01"))
    with pytest.raises(AdvisorValidationError):
        advisor.analyze_due_soon_placement(_due_soon(["job-a"], date_from="06/01/2024"))


@pytest.mark.parametrize("kwargs", [{"crew_size": 0}, {"due_policy": "strict"}, {"max_candidates": 0}])
def test_request_validation(kwargs):
    with pytest.raises(AdvisorValidationError):
        _due_soon(["job-a"], **kwargs)


def test_empty_job_list(advisor):
    assert advisor.analyze_due_soon_placement(_due_soon([])).suggestions == ()


def test_empty_job_list_clears_name_cache(advisor):
    advisor.analyze_due_soon_placement(_due_soon(["job-a"]))
    assert "t1" in advisor.names
    advisor.analyze_due_soon_placement(_due_soon([]))
    assert len(advisor.names) == 0


# Move-job

def test_move_job_defaults(advisor):
    result = advisor.analyze_move_job(_move())
    assert result.crew_size == 2
    assert result.due_policy == "soft"
    assert len(result.candidates) == 3
    assert all(len(c.technician_ids) == 2 for c in result.candidates)


def test_move_job_excludes_own_schedule_from_load(advisor):
    result = advisor.analyze_move_job(_move(date_from="2024-06-05", date_to="2024-06-05"))
    top = result.candidates[0]
    assert top.technician_ids == ("t1", "t2")
    assert top.breakdown.load_hours == 0
    assert top.breakdown.travel_points == 0
    assert top.score == 0


def test_move_job_uses_current_date_as_due_date(advisor):
    result = advisor.analyze_move_job(_move(date_from="2024-06-07", date_to="2024-06-07", technician_ids=("t1", "t2")))
    assert result.candidates[0].breakdown.due_penalty_days == 2
    assert result.candidates[0].breakdown.due_penalty_points == 40


def test_move_job_includes_travel(advisor):
    result = advisor.analyze_move_job(
        _move(date_from="2024-06-05", date_to="2024-06-05", technician_ids=("t1", "t3"))
    )
    cand = result.candidates[0]
    assert cand.breakdown.travel_points == 15
    assert "travelPoints" in cand.as_dict()["scoreBreakdown"]
    # crew start waits for t3's 13:00-15:00 job plus the 30 min buffer
    assert cand.start == _utc(5, 15, 30)


def test_move_job_without_enhancer_reports_skip(advisor):
    result = advisor.analyze_move_job(_move())
    assert result.ai_used is False
    assert result.ai_skip_reason == "No reason enhancer configured"
    assert result.as_dict()["aiUsed"] is False


def test_move_job_enhancer_rewrites_reasons(snapshot, all_days_config):
    def enhancer(title, due, candidates):
        assert title == "Window wash"
        assert due == date(2024, 6, 5)
        return [f"Recommended: {c.date}" for c in candidates]

    result = PlacementAdvisor(snapshot, all_days_config, reason_enhancer=enhancer).analyze_move_job(_move())
    assert result.ai_used is True
    assert result.ai_skip_reason is None
    assert result.candidates[0].reason.startswith("Recommended:")


def test_move_job_enhancer_failure_falls_back(snapshot, all_days_config):
    def enhancer(title, due, candidates):
        raise TimeoutError("model timed out")

    advisor = PlacementAdvisor(snapshot, all_days_config, reason_enhancer=enhancer)
    result = advisor.analyze_move_job(_move())
    assert result.ai_used is False
    assert "model timed out" in result.ai_skip_reason
    assert result.candidates == PlacementAdvisor(snapshot, all_days_config).analyze_move_job(_move()).candidates


def test_move_job_include_ai_off(snapshot, all_days_config):
    advisor = PlacementAdvisor(snapshot, all_days_config, reason_enhancer=lambda *a: ["x"] * 3)
    result = advisor.analyze_move_job(_move(include_ai=False))
    assert result.ai_used is False
    assert result.ai_skip_reason is None


def test_move_job_unknown_schedule(advisor):
    with pytest.raises(RecordNotFoundError):
        advisor.analyze_move_job(_move(schedule_id="missing"))


def test_move_job_crew_larger_than_pool(advisor):
    with pytest.raises(AdvisorValidationError):
        advisor.analyze_move_job(_move(technician_ids=("t1",)))


def test_move_job_no_viable_slot(snapshot):
    policy = SchedulingPolicy(allowed_days=ALL_DAYS, max_hours_per_day=2)
    result = PlacementAdvisor(snapshot, AdvisorConfig(policy=policy)).analyze_move_job(_move())
    assert result.no_viable_slot
    assert result.as_dict()["noViableSlot"] is True


# Apply

def test_apply_moves_schedule(advisor, snapshot):
    cand = advisor.analyze_move_job(_move(date_from="2024-06-06", date_to="2024-06-06")).candidates[0]
    start = advisor.apply_placement("sch-1", cand, 3.0, buffer_minutes=30)
    moved = snapshot.get_schedule("sch-1")
    assert moved.day == date(2024, 6, 6)
    assert moved.technician_ids == cand.technician_ids
    assert moved.start == start == _utc(6, 9)
    assert moved.service_date == date(2024, 6, 6)


def test_apply_due_soon_job_creates_schedule(advisor, snapshot):
    cand = advisor.analyze_due_soon_placement(_due_soon(["job-a"])).suggestions[0].candidates[0]
    advisor.apply_placement("job-a", cand, 2.0)
    assert snapshot.get_schedule("job-a").technician_ids == cand.technician_ids
    assert snapshot.get_due_soon_jobs(["job-a"]) == []


def test_apply_rejects_stale_suggestion(advisor, snapshot):
    cand = advisor.analyze_due_soon_placement(_due_soon(["job-a"])).suggestions[0].candidates[0]
    day = cand.date
    for h in range(4):
        entry = ScheduleEntry(f"late-{h}", ("t1",), _utc(day.day, 8 + h), 1.0)
        snapshot.schedules[entry.schedule_id] = entry

    with pytest.raises(StaleSuggestionError) as exc:
        advisor.apply_placement("job-a", cand, 2.0)
    assert exc.value.reasons[0].startswith("t1:")
    assert snapshot.get_schedule("job-a") is None


def test_apply_requires_writer(snapshot, all_days_config):
    read_only = SimpleNamespace(
        get_technicians=snapshot.get_technicians,
        get_schedules=snapshot.get_schedules,
        get_schedule=snapshot.get_schedule,
        get_due_soon_jobs=snapshot.get_due_soon_jobs,
    )
    advisor = PlacementAdvisor(read_only, all_days_config)
    cand = advisor.analyze_due_soon_placement(_due_soon(["job-a"])).suggestions[0].candidates[0]
    with pytest.raises(AdvisorError, match="writer"):
        advisor.apply_placement("job-a", cand, 2.0)


def test_apply_rejects_start_past_midnight(advisor, snapshot):
    late = ScheduleEntry("late", ("t1",), _utc(3, 20), 3.5)
    snapshot.schedules[late.schedule_id] = late
    cand = CandidateSlot(date(2024, 6, 3), ("t1",), 0.0, ScoreBreakdown(0.0, 0, 0.0, 0.0), "picked")

    # 20:00 + 3.5h + 45 min lands at 00:15 on 06-04
    with pytest.raises(StaleSuggestionError) as exc:
        advisor.apply_placement("job-a", cand, 2.0, buffer_minutes=45)
    assert "2024-06-04T00:15:00+00:00" in exc.value.reasons[0]
    assert snapshot.get_schedule("job-a") is None
    assert snapshot.get_due_soon_jobs(["job-a"])


def test_apply_files_write_under_candidate_date(advisor, snapshot):
    late = ScheduleEntry("late", ("t1",), _utc(3, 20), 3.0)
    snapshot.schedules[late.schedule_id] = late
    cand = CandidateSlot(date(2024, 6, 3), ("t1",), 0.0, ScoreBreakdown(0.0, 0, 0.0, 0.0), "picked")

    start = advisor.apply_placement("job-a", cand, 1.0, buffer_minutes=30)
    assert start == _utc(3, 23, 30)
    assert snapshot.get_schedule("job-a").day == date(2024, 6, 3)
