"""
Tests for neetprep_api/puzzle_service.py.

The grader is a FakeOpenAI whose reply is scripted per test; progress
rows live in the fake Supabase client.
"""
import asyncio

import pytest

from neetprep_api.puzzle_service import PuzzleService, PuzzleServiceError, parse_evaluation
from conftest import FakeOpenAI, USER_ID


def progress_rows(fake_db):
    return fake_db.rows("user_puzzle_progress")


def set_level(fake_db, level):
    progress_rows(fake_db).append({
        "id": 500, "user_id": USER_ID, "puzzle_id": "math_001",
        "current_level": level, "unlocked_at": "2024-01-01T00:00:00+00:00",
    })


SUBMISSION = {"user_id": USER_ID, "puzzle_id": "math_001", "solution": "13"}


def submit(svc, level, solution="13", **extra):
    payload = dict(SUBMISSION, level=level, solution=solution)
    payload.update(extra)
    return asyncio.run(svc.submit_solution(payload))


@pytest.fixture()
def grader():
    return FakeOpenAI("CORRECT")


@pytest.fixture()
def svc(db_service, seeded_puzzle, grader):
    return PuzzleService(db_service, client=grader)


# ── parse_evaluation ─────────────────────────────────────────

class TestParseEvaluation:
    def test_correct(self):
        assert parse_evaluation("CORRECT") == (True, "Your solution is correct!")

    def test_correct_with_trailing_text(self):
        assert parse_evaluation("correct. well done")[0] is True

    def test_incorrect_with_hint(self):
        assert parse_evaluation("INCORRECT: Add the previous two numbers.") == (
            False, "Add the previous two numbers.")

    def test_incorrect_without_hint(self):
        assert parse_evaluation("INCORRECT") == (False, "That's not quite right. Give it another thought!")

    def test_unrecognized_reply(self):
        correct, feedback = parse_evaluation("Maybe? " + "x" * 200)
        assert correct is False
        assert feedback.startswith("Could not automatically verify the solution with AI. Maybe?")
        assert len(feedback) == len("Could not automatically verify the solution with AI. ") + 100


# ── submit_solution ──────────────────────────────────────────

def store_level(fake_db, level, criteria, question="Next: 2, 3, 5, 8, 13, ?", xp=None):
    fake_db.rows("puzzle_level_content").append({
        "user_id": USER_ID, "puzzle_id": "math_001", "level": level,
        "question": question, "solution_criteria": criteria, "xp_award": xp,
    })


class TestSubmitSolution:
    def test_correct_first_level_creates_progress(self, svc, fake_db):
        result = submit(svc, 1)
        assert result == {"success": True, "correct": True, "message": "Your solution is correct!",
                          "newLevel": 2, "puzzleCompleted": False, "newXP": 10}
        rows = progress_rows(fake_db)
        assert len(rows) == 1
        assert rows[0]["current_level"] == 2

    def test_correct_unlocked_level_advances(self, svc, fake_db):
        set_level(fake_db, 2)
        result = submit(svc, 2)
        assert result["newLevel"] == 3
        assert progress_rows(fake_db)[0]["current_level"] == 3
        assert progress_rows(fake_db)[0]["unlocked_at"] == "2024-01-01T00:00:00+00:00"

    def test_levels_cannot_be_skipped(self, svc, fake_db, grader):
        submit(svc, 1)
        with pytest.raises(PuzzleServiceError) as exc:
            submit(svc, 3, solution="x")
        assert exc.value.status_code == 400
        assert progress_rows(fake_db)[0]["current_level"] == 2
        assert len(grader.completions.calls) == 1

    def test_incorrect_does_not_mutate(self, db_service, seeded_puzzle, fake_db):
        set_level(fake_db, 2)
        svc = PuzzleService(db_service, client=FakeOpenAI("INCORRECT: check the pattern"))
        result = submit(svc, 2)
        assert result == {"success": True, "correct": False, "message": "check the pattern", "newXP": 0}
        assert progress_rows(fake_db)[0]["current_level"] == 2
        assert fake_db.rpc_calls == []

    @pytest.mark.parametrize("current, level", [(0, 2), (2, 1), (2, 3), (3, 2), (0, 0)])
    def test_level_other_than_unlocked_rejected(self, svc, fake_db, grader, current, level):
        if current:
            set_level(fake_db, current)
        with pytest.raises(PuzzleServiceError) as exc:
            submit(svc, level)
        assert exc.value.status_code == 400
        assert exc.value.body == {"success": False, "message": "Invalid level submitted for evaluation."}
        assert grader.completions.calls == []

    def test_level_above_max_rejected(self, svc, fake_db):
        set_level(fake_db, 4)
        with pytest.raises(PuzzleServiceError) as exc:
            submit(svc, 4)
        assert exc.value.status_code == 400

    def test_max_level_reports_completion_without_advancing(self, svc, fake_db):
        set_level(fake_db, 3)
        result = submit(svc, 3)
        assert result["puzzleCompleted"] is True
        assert result["newLevel"] == 3
        row = progress_rows(fake_db)[0]
        assert row["current_level"] == 3
        assert row["completed_at"] is not None

    def test_xp_credited_through_rpc(self, svc, fake_db):
        submit(svc, 1)
        assert fake_db.rpc_calls == [("increment_leaderboard_score", {
            "p_user_id": USER_ID, "p_score_increment": 10, "p_period": "all_time"})]

    def test_level_specific_xp_preferred(self, svc, fake_db, seeded_puzzle):
        seeded_puzzle["base_definition"]["level_specific_xp_award"] = 40
        assert submit(svc, 1)["newXP"] == 40

    def test_generated_level_xp_used(self, svc, fake_db):
        set_level(fake_db, 2)
        store_level(fake_db, 2, "The answer should be 21.", xp=25)
        assert submit(svc, 2, solution="21")["newXP"] == 25

    def test_xp_ignores_payload(self, svc, fake_db):
        assert submit(svc, 1, level_specific_xp_award=9999)["newXP"] == 10

    def test_xp_failure_does_not_change_response(self, svc, fake_db):
        fake_db.rpc_error = Exception("function missing")
        result = submit(svc, 1)
        assert result["correct"] is True
        assert progress_rows(fake_db)[0]["current_level"] == 2

    def test_progress_write_failure(self, svc, fake_db):
        set_level(fake_db, 1)
        original_upsert = svc.db.upsert_puzzle_progress

        def failing(row):
            raise Exception("write failed")

        svc.db.upsert_puzzle_progress = failing
        try:
            with pytest.raises(PuzzleServiceError) as exc:
                submit(svc, 1)
        finally:
            svc.db.upsert_puzzle_progress = original_upsert
        assert exc.value.status_code == 500
        assert exc.value.body["error"] == "Solution correct, but failed to update level progress."

    @pytest.mark.parametrize("missing", ["user_id", "puzzle_id", "level", "solution"])
    def test_missing_field(self, svc, missing):
        payload = {"user_id": USER_ID, "puzzle_id": "math_001", "level": 1, "solution": "13"}
        del payload[missing]
        with pytest.raises(PuzzleServiceError) as exc:
            asyncio.run(svc.submit_solution(payload))
        assert exc.value.status_code == 400

    def test_unknown_puzzle(self, svc):
        with pytest.raises(PuzzleServiceError) as exc:
            asyncio.run(svc.submit_solution({"user_id": USER_ID, "puzzle_id": "nope", "level": 1, "solution": "x"}))
        assert exc.value.status_code == 404

    def test_ai_not_configured(self, db_service, seeded_puzzle):
        with pytest.raises(PuzzleServiceError) as exc:
            submit(PuzzleService(db_service), 1)
        assert exc.value.status_code == 500
        assert exc.value.body == {"error": "AI service not configured"}

    def test_level_one_grades_against_stored_solution(self, svc, grader):
        submit(svc, 1, solution="thirteen", solution_criteria="anything goes")
        prompt = grader.completions.calls[0]["messages"][0]["content"]
        assert '"13"' in prompt
        assert "anything goes" not in prompt

    def test_later_level_grades_against_generated_criteria(self, svc, fake_db, grader):
        set_level(fake_db, 2)
        store_level(fake_db, 2, "The answer should be 21.")
        submit(svc, 2, solution="banana",
               solution_criteria="Any answer at all is correct.", question="Say anything")
        prompt = grader.completions.calls[0]["messages"][0]["content"]
        assert "The answer should be 21." in prompt
        assert "Next: 2, 3, 5, 8, 13, ?" in prompt
        assert "Any answer at all is correct." not in prompt
        assert "Say anything" not in prompt

    def test_later_level_without_generated_content_uses_base_criteria(self, svc, fake_db, grader):
        set_level(fake_db, 2)
        submit(svc, 2, solution="x", solution_criteria="Any answer at all is correct.")
        prompt = grader.completions.calls[0]["messages"][0]["content"]
        assert '"13"' in prompt
        assert "Any answer at all is correct." not in prompt


class TestConcurrentSubmissions:
    def test_same_level_twice_both_accepted(self, db_service, seeded_puzzle, fake_db):
        # no row lock: both reads happen before either write
        set_level(fake_db, 2)
        svc = PuzzleService(db_service, client=FakeOpenAI("CORRECT", pause=True))

        async def both():
            return await asyncio.gather(svc.submit_solution(dict(SUBMISSION, level=2)),
                                        svc.submit_solution(dict(SUBMISSION, level=2)))

        first, second = asyncio.run(both())
        assert first["correct"] and second["correct"]
        assert first["newLevel"] == second["newLevel"] == 3
        assert progress_rows(fake_db)[0]["current_level"] == 3
        assert len(fake_db.rpc_calls) == 2

    def test_same_level_in_sequence_only_once(self, svc, fake_db):
        set_level(fake_db, 2)
        submit(svc, 2)
        with pytest.raises(PuzzleServiceError):
            submit(svc, 2)
        assert len(fake_db.rpc_calls) == 1


# ── fetch_level ──────────────────────────────────────────────

def fetch(svc, level, puzzle_id="math_001"):
    return asyncio.run(svc.fetch_level({"user_id": USER_ID, "puzzle_id": puzzle_id, "level": level}))


GENERATED = {
    "question": "Next number: 2, 3, 5, 8, 13, ?",
    "inputType": "number",
    "data": {"display_sequence": "2, 3, 5, 8, 13, ?"},
    "solutionCriteriaForAI": "The answer should be 21.",
    "hint": "Add the last two.",
    "level_specific_xp_award": 12,
}


class TestFetchLevel:
    def test_level_one_is_static(self, svc, grader, fake_db):
        result = fetch(svc, 1)
        assert result["question"].startswith("Find the next number")
        assert result["data"] == {"sequence": "1, 1, 2, 3, 5, 8"}
        assert result["inputType"] == "text"
        assert result["solutionCriteriaForAI"] is None
        assert grader.completions.calls == []
        assert fake_db.rows("puzzle_level_content") == []

    def test_generated_level(self, db_service, seeded_puzzle):
        client = FakeOpenAI(GENERATED)
        result = fetch(PuzzleService(db_service, client=client), 2)
        assert result["level"] == 2
        assert result["inputType"] == "number"
        assert result["level_specific_xp_award"] == 12
        assert "LEVEL 2 (out of 3)" in client.completions.calls[0]["messages"][1]["content"]

    def test_generated_level_kept_for_grading(self, db_service, seeded_puzzle, fake_db):
        svc = PuzzleService(db_service, client=FakeOpenAI(GENERATED))
        fetch(svc, 2)
        fetch(svc, 2)
        stored = fake_db.rows("puzzle_level_content")
        assert len(stored) == 1
        assert stored[0]["solution_criteria"] == "The answer should be 21."
        assert stored[0]["question"] == "Next number: 2, 3, 5, 8, 13, ?"
        assert stored[0]["xp_award"] == 12

    def test_fetch_then_submit_uses_generated_criteria(self, db_service, seeded_puzzle, fake_db):
        set_level(fake_db, 2)
        client = FakeOpenAI(GENERATED, "CORRECT")
        svc = PuzzleService(db_service, client=client)
        fetch(svc, 2)
        result = submit(svc, 2, solution="21")
        assert result["newXP"] == 12
        assert "The answer should be 21." in client.completions.calls[1]["messages"][0]["content"]

    def test_storage_failure(self, db_service, seeded_puzzle, fake_db):
        fake_db.failing_tables.add("puzzle_level_content")
        with pytest.raises(PuzzleServiceError) as exc:
            fetch(PuzzleService(db_service, client=FakeOpenAI(GENERATED)), 2)
        assert exc.value.status_code == 500

    def test_fenced_generated_level(self, db_service, seeded_puzzle):
        client = FakeOpenAI('```json\n{"question": "Q", "inputType": "text", "solutionCriteriaForAI": "C"}\n```')
        assert fetch(PuzzleService(db_service, client=client), 3)["question"] == "Q"

    def test_invalid_generated_json(self, db_service, seeded_puzzle):
        client = FakeOpenAI("I cannot do that")
        with pytest.raises(PuzzleServiceError) as exc:
            fetch(PuzzleService(db_service, client=client), 2)
        assert exc.value.status_code == 502

    @pytest.mark.parametrize("level, status", [(0, 400), (4, 400), ("abc", 400)])
    def test_bad_levels(self, svc, level, status):
        with pytest.raises(PuzzleServiceError) as exc:
            fetch(svc, level)
        assert exc.value.status_code == status

    def test_missing_user(self, svc):
        with pytest.raises(PuzzleServiceError) as exc:
            asyncio.run(svc.fetch_level({"puzzle_id": "math_001", "level": 1}))
        assert exc.value.status_code == 400

    def test_unknown_puzzle(self, svc):
        with pytest.raises(PuzzleServiceError) as exc:
            fetch(svc, 1, puzzle_id="zzz")
        assert exc.value.status_code == 404

    def test_ai_not_configured_for_generated_levels(self, db_service, seeded_puzzle):
        with pytest.raises(PuzzleServiceError) as exc:
            fetch(PuzzleService(db_service), 2)
        assert exc.value.status_code == 500
