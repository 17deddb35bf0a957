"""Validation of question-bank JSON at the store boundary.

The ``tests.questions`` and ``coding_problems.test_cases`` columns are JSON
blobs with no schema of their own.  Every row is parsed here into a tagged
record before anything downstream sees it:

  {"kind": "mcq", "question": ..., "options": [...], "answer": 1}
  {"kind": "test_case", "input": ..., "expected_output": ..., "hidden": false}

Rows without ``kind`` are the legacy MCQ shape and are read as ``mcq``.
Anything else is rejected with QuestionBankError naming the row, so a bad
record fails at load time rather than in the middle of an attempt.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from prep_service.models.activity import Problem, TestCase
from prep_service.models.assessment import Question, TestDefinition


class QuestionBankError(ValueError):
    pass


class McqRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["mcq"] = "mcq"
    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    answer: int

    @model_validator(mode="after")
    def _answer_in_range(self) -> McqRecord:
        if not 0 <= self.answer < len(self.options):
            raise ValueError(
                f"answer {self.answer} is not an index into {len(self.options)} options"
            )
        return self

    def to_question(self) -> Question:
        return Question(
            prompt=self.question,
            options=tuple(self.options),
            correct_index=self.answer,
        )


class TestCaseRecord(BaseModel):
    __test__ = False
    model_config = ConfigDict(frozen=True)

    kind: Literal["test_case"]
    input: str
    expected_output: str
    hidden: bool = False

    def to_test_case(self) -> TestCase:
        return TestCase(
            input=self.input, expected_output=self.expected_output, hidden=self.hidden
        )


QuestionRecord = Annotated[McqRecord | TestCaseRecord, Field(discriminator="kind")]

_RECORD_ADAPTER: TypeAdapter[McqRecord | TestCaseRecord] = TypeAdapter(QuestionRecord)


class _TestRow(BaseModel):
    id: str
    title: str = Field(min_length=1)
    type: str = "general"
    difficulty: str = "medium"
    time_limit: int = Field(default=30, gt=0)
    description: str | None = None
    questions: list[Any] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        # UUID primary keys come straight from the Pg repo
        return value if isinstance(value, str) else str(value)

    @field_validator("questions", mode="before")
    @classmethod
    def _null_questions(cls, value: Any) -> Any:
        return [] if value is None else value


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def parse_record(raw: Any, index: int = 0) -> McqRecord | TestCaseRecord:
    if not isinstance(raw, Mapping):
        raise QuestionBankError(f"row {index}: expected an object, got {type(raw).__name__}")
    data = dict(raw)
    data.setdefault("kind", "mcq")
    try:
        return _RECORD_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise QuestionBankError(f"row {index}: {_first_error(exc)}") from None


def parse_questions(rows: Iterable[Any]) -> tuple[Question, ...]:
    questions: list[Question] = []
    for index, raw in enumerate(rows):
        record = parse_record(raw, index)
        if not isinstance(record, McqRecord):
            raise QuestionBankError(f"row {index}: expected an mcq record, got {record.kind}")
        questions.append(record.to_question())
    return tuple(questions)


def parse_test_cases(rows: Iterable[Any] | None) -> tuple[TestCase, ...]:
    cases: list[TestCase] = []
    for index, raw in enumerate(rows or ()):
        if isinstance(raw, Mapping) and "kind" not in raw:
            raw = {**raw, "kind": "test_case"}
        record = parse_record(raw, index)
        if not isinstance(record, TestCaseRecord):
            raise QuestionBankError(f"row {index}: expected a test_case record, got {record.kind}")
        cases.append(record.to_test_case())
    return tuple(cases)


def parse_test_definition(row: Mapping[str, Any]) -> TestDefinition:
    """Build a TestDefinition from a ``tests`` row.

    Zero questions is accepted here; starting an attempt on such a test is
    refused by the attempt service.
    """
    try:
        parsed = _TestRow.model_validate(dict(row))
    except ValidationError as exc:
        raise QuestionBankError(f"test {row.get('id')!r}: {_first_error(exc)}") from None

    return TestDefinition(
        id=parsed.id,
        title=parsed.title,
        time_limit_minutes=parsed.time_limit,
        questions=parse_questions(parsed.questions),
        test_type=parsed.type,
        difficulty=parsed.difficulty,
        description=parsed.description or "",
    )


def parse_problem(row: Mapping[str, Any]) -> Problem:
    """Build a Problem from a ``coding_problems`` row, test cases included."""
    try:
        test_cases = parse_test_cases(row.get("test_cases"))
    except QuestionBankError as exc:
        raise QuestionBankError(f"problem {row.get('id')!r}: {exc}") from None
    return Problem(
        id=str(row["id"]),
        topic=row.get("topic"),
        difficulty=row.get("difficulty") or "easy",
        title=row.get("title") or "",
        test_cases=test_cases,
    )
