from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest

from prep_service.models.activity import TestCase
from prep_service.repos.pg_activity_repo import _problem_row_to_dict
from prep_service.services.question_bank import (
    McqRecord,
    QuestionBankError,
    TestCaseRecord,
    parse_problem,
    parse_questions,
    parse_record,
    parse_test_cases,
    parse_test_definition,
)


def _row(**overrides) -> dict:
    row = {
        "id": "t-1",
        "title": "Logical reasoning",
        "type": "aptitude",
        "difficulty": "easy",
        "time_limit": 20,
        "description": "Warm-up",
        "questions": [
            {"question": "1, 2, 4, 8, ?", "options": ["10", "12", "16"], "answer": 2},
            {"question": "Odd one out", "options": ["cat", "dog", "car"], "answer": 2},
        ],
    }
    row.update(overrides)
    return row


# ---- records ----


def test_legacy_row_without_kind_is_mcq() -> None:
    record = parse_record({"question": "Q", "options": ["a", "b"], "answer": 0})
    assert isinstance(record, McqRecord)
    assert record.to_question().options == ("a", "b")


def test_tagged_test_case_record() -> None:
    record = parse_record(
        {"kind": "test_case", "input": "1 2", "expected_output": "3", "hidden": True}
    )
    assert isinstance(record, TestCaseRecord)
    assert record.hidden is True


def test_unknown_kind_rejected() -> None:
    with pytest.raises(QuestionBankError, match="row 0"):
        parse_record({"kind": "essay", "question": "Why?"})


def test_non_object_rejected() -> None:
    with pytest.raises(QuestionBankError, match="expected an object"):
        parse_record(["not", "a", "dict"], 4)


@pytest.mark.parametrize(
    "raw",
    [
        {"question": "Q", "options": ["a", "b"], "answer": 2},
        {"question": "Q", "options": ["a", "b"], "answer": -1},
        {"question": "Q", "options": ["only"], "answer": 0},
        {"question": "", "options": ["a", "b"], "answer": 0},
    ],
)
def test_invalid_mcq_rejected(raw: dict) -> None:
    with pytest.raises(QuestionBankError):
        parse_record(raw)


def test_error_names_the_failing_row() -> None:
    rows = [
        {"question": "ok", "options": ["a", "b"], "answer": 0},
        {"question": "bad", "options": ["a", "b"], "answer": 5},
    ]
    with pytest.raises(QuestionBankError, match="row 1"):
        parse_questions(rows)


def test_test_case_in_question_list_rejected() -> None:
    with pytest.raises(QuestionBankError, match="expected an mcq record"):
        parse_questions([{"kind": "test_case", "input": "", "expected_output": ""}])


def test_test_cases_default_kind() -> None:
    cases = parse_test_cases([{"input": "3", "expected_output": "6"}])
    assert cases == (TestCase(input="3", expected_output="6"),)


def test_test_cases_none_is_empty() -> None:
    assert parse_test_cases(None) == ()


def test_mcq_in_test_case_list_rejected() -> None:
    with pytest.raises(QuestionBankError, match="expected a test_case record"):
        parse_test_cases([{"kind": "mcq", "question": "Q", "options": ["a", "b"], "answer": 0}])


# ---- coding problems ----


def test_parse_problem_with_test_cases() -> None:
    problem = parse_problem(
        {
            "id": "p-1",
            "title": "Two sum",
            "topic": "Arrays",
            "difficulty": "easy",
            "test_cases": [
                {"input": "2 7 11 15\n9", "expected_output": "0 1"},
                {"input": "3 3\n6", "expected_output": "0 1", "hidden": True},
            ],
        }
    )

    assert problem.topic == "Arrays"
    assert [c.hidden for c in problem.test_cases] == [False, True]


def test_problem_without_test_cases() -> None:
    problem = parse_problem({"id": "p-2", "title": "FizzBuzz", "test_cases": None})
    assert problem.test_cases == ()
    assert problem.difficulty == "easy"


def test_bad_test_case_names_the_problem() -> None:
    with pytest.raises(QuestionBankError, match="problem 'p-3': row 1"):
        parse_problem(
            {
                "id": "p-3",
                "title": "Broken",
                "test_cases": [{"input": "1", "expected_output": "1"}, {"input": 5}],
            }
        )


def test_problem_row_uuid_is_stringified() -> None:
    key = uuid.uuid4()
    row = SimpleNamespace(
        id=key, title="Graph BFS", topic="Graphs", difficulty="hard", test_cases=[]
    )
    problem = parse_problem(_problem_row_to_dict(row))  # type: ignore[arg-type]
    assert problem.id == str(key)
    assert problem.difficulty == "hard"


# ---- test definitions ----


def test_parse_test_definition() -> None:
    definition = parse_test_definition(_row())

    assert definition.id == "t-1"
    assert definition.test_type == "aptitude"
    assert definition.time_limit_minutes == 20
    assert definition.time_limit_seconds == 1200
    assert definition.question_count == 2
    assert definition.questions[0].correct_index == 2


def test_uuid_id_is_stringified() -> None:
    key = uuid.uuid4()
    assert parse_test_definition(_row(id=key)).id == str(key)


def test_null_questions_means_empty_test() -> None:
    definition = parse_test_definition(_row(questions=None))
    assert definition.question_count == 0


def test_missing_description_becomes_empty_string() -> None:
    assert parse_test_definition(_row(description=None)).description == ""


def test_non_positive_time_limit_rejected() -> None:
    with pytest.raises(QuestionBankError, match="time_limit"):
        parse_test_definition(_row(time_limit=0))


def test_bad_question_fails_whole_definition() -> None:
    with pytest.raises(QuestionBankError):
        parse_test_definition(_row(questions=[{"question": "Q", "options": [], "answer": 0}]))
