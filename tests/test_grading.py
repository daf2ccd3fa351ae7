import pytest

from quizapp.application.grading import apply_grading, grade
from quizapp.domain.models import (
    Answer,
    Attempt,
    AttemptStatus,
    Choice,
    ChoiceQuestion,
    ChoiceResponse,
    NumericQuestion,
    NumericResponse,
    OpenQuestion,
    QuestionType,
    TestDefinition,
    TextResponse,
)

from conftest import T0


def _choice_question(qid, qtype, correct, wrong=("x",), points=10):
    choices = tuple(Choice(id=c, text=c, is_correct=True) for c in correct)
    choices += tuple(Choice(id=c, text=c) for c in wrong)
    return ChoiceQuestion(id=qid, type=qtype, text=qid, points=points, choices=choices)


def _test(*questions):
    return TestDefinition(id="t", title="t", questions=tuple(questions))


def _attempt(*answers):
    return Attempt(test_id="t", user_id="u", started_at=T0, id="a1", answers=list(answers))


def _is_correct(question, response):
    result = grade(_test(question), _attempt(Answer(question_id=question.id, response=response)))
    return result.per_question[question.id].is_correct


@pytest.mark.parametrize("qtype", [QuestionType.SINGLE, QuestionType.TRUEFALSE])
class TestFirstChoiceQuestions:
    def test_correct_choice(self, qtype):
        q = _choice_question("q", qtype, correct=("c1",), wrong=("c2",))
        assert _is_correct(q, ChoiceResponse(("c1",)))

    def test_wrong_choice(self, qtype):
        q = _choice_question("q", qtype, correct=("c1",), wrong=("c2",))
        assert not _is_correct(q, ChoiceResponse(("c2",)))

    def test_empty_selection_is_incorrect(self, qtype):
        q = _choice_question("q", qtype, correct=("c1",), wrong=("c2",))
        assert not _is_correct(q, ChoiceResponse(()))

    def test_only_first_selection_counts(self, qtype):
        q = _choice_question("q", qtype, correct=("c1",), wrong=("c2",))
        assert _is_correct(q, ChoiceResponse(("c1", "c2")))
        assert not _is_correct(q, ChoiceResponse(("c2", "c1")))

    def test_unknown_choice_id(self, qtype):
        q = _choice_question("q", qtype, correct=("c1",), wrong=("c2",))
        assert not _is_correct(q, ChoiceResponse(("nope",)))

    def test_non_choice_response_is_incorrect(self, qtype):
        q = _choice_question("q", qtype, correct=("c1",), wrong=("c2",))
        assert not _is_correct(q, TextResponse("c1"))


class TestMultipleChoice:
    question = _choice_question("q", QuestionType.MULTIPLE, correct=("a", "b"), wrong=("c",))

    def test_exact_set_is_correct_in_any_order(self):
        assert _is_correct(self.question, ChoiceResponse(("b", "a")))

    def test_subset_gets_no_credit(self):
        assert not _is_correct(self.question, ChoiceResponse(("a",)))

    def test_superset_gets_no_credit(self):
        assert not _is_correct(self.question, ChoiceResponse(("a", "b", "c")))

    def test_duplicates_do_not_fill_the_set(self):
        assert not _is_correct(self.question, ChoiceResponse(("a", "a")))

    def test_empty_selection(self):
        assert not _is_correct(self.question, ChoiceResponse(()))


class TestNumeric:
    question = NumericQuestion(id="n", text="2*3", points=5, correct_answer="6")

    def test_exact_match(self):
        assert _is_correct(self.question, NumericResponse("6"))

    def test_surrounding_whitespace_is_trimmed(self):
        assert _is_correct(self.question, NumericResponse(" 6 "))

    def test_no_numeric_parsing(self):
        assert not _is_correct(self.question, NumericResponse("6.0"))

    def test_missing_key_is_incorrect(self):
        q = NumericQuestion(id="n", text="?", points=5, correct_answer=None)
        assert not _is_correct(q, NumericResponse("6"))

    def test_choice_response_is_incorrect(self):
        assert not _is_correct(self.question, ChoiceResponse(("6",)))


def test_open_questions_are_never_correct():
    q = OpenQuestion(id="o", text="Explain", points=10)
    assert not _is_correct(q, TextResponse("a perfect essay"))
    assert not _is_correct(q, TextResponse(""))


def test_totals_include_unanswered_questions():
    q1 = _choice_question("q1", QuestionType.SINGLE, correct=("c1",), points=10)
    q2 = NumericQuestion(id="q2", text="?", points=5, correct_answer="42")
    q3 = OpenQuestion(id="q3", text="?", points=5)
    attempt = _attempt(
        Answer(question_id="q1", response=ChoiceResponse(("c1",))),
        Answer(question_id="q2", response=NumericResponse("41")),
    )

    result = grade(_test(q1, q2, q3), attempt)

    assert result.total_points == 20
    assert result.earned_points == 10
    assert result.score == 50.0
    assert set(result.per_question) == {"q1", "q2"}
    assert result.per_question["q2"].points_awarded == 0


def test_zero_questions_scores_zero():
    result = grade(_test(), _attempt())
    assert result.total_points == 0
    assert result.score == 0.0


def test_grade_is_idempotent_and_leaves_attempt_untouched():
    q1 = _choice_question("q1", QuestionType.SINGLE, correct=("c1",))
    attempt = _attempt(Answer(question_id="q1", response=ChoiceResponse(("c1",))))
    test = _test(q1)

    first = grade(test, attempt)
    second = grade(test, attempt)

    assert first == second
    assert attempt.answers[0].is_correct is None
    assert attempt.score is None
    assert attempt.status == AttemptStatus.IN_PROGRESS


def test_apply_grading_sets_fields_and_status():
    q1 = _choice_question("q1", QuestionType.SINGLE, correct=("c1",), points=4)
    attempt = _attempt(Answer(question_id="q1", response=ChoiceResponse(("c1",))))

    apply_grading(attempt, grade(_test(q1), attempt))

    assert attempt.status == AttemptStatus.GRADED
    assert attempt.answers[0].is_correct is True
    assert attempt.answers[0].points_awarded == 4
    assert (attempt.total_points, attempt.earned_points, attempt.score) == (4, 4, 100.0)


def test_apply_grading_refuses_graded_attempt():
    q1 = _choice_question("q1", QuestionType.SINGLE, correct=("c1",))
    attempt = _attempt()
    apply_grading(attempt, grade(_test(q1), attempt))

    with pytest.raises(ValueError):
        apply_grading(attempt, grade(_test(q1), attempt))
