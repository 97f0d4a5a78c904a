import pytest

from academy.core.errors import NotFound
from academy.models.enrollment import COMPLETED, WITHDRAWN
from academy.services.gpa import GPACalculator, letter_grade, percentage_to_gpa, summarize


@pytest.mark.parametrize(
    "pct, letter",
    [(100, "A"), (90, "A"), (89.99, "B"), (80, "B"), (70, "C"), (60, "D"), (59.9, "F"), (0, "F")],
)
def test_letter_grade_buckets(pct, letter):
    assert letter_grade(pct) == letter


@pytest.mark.parametrize(
    "pct, points",
    [
        (100, 4.0),
        (93, 4.0),
        (92.9, 3.7),
        (90, 3.7),
        (87, 3.3),
        (83, 3.0),
        (80, 2.7),
        (77, 2.3),
        (73, 2.0),
        (70, 1.7),
        (67, 1.3),
        (63, 1.0),
        (60, 0.7),
        (59.99, 0.0),
    ],
)
def test_gpa_step_function(pct, points):
    assert percentage_to_gpa(pct) == points


def test_scales_are_independent():
    # 91% is an A on the letter scale but only 3.7 grade points
    assert letter_grade(91) == "A"
    assert percentage_to_gpa(91) == 3.7


def test_summarize_with_no_possible_points():
    assert summarize([]) == (0.0, "F", 0.0)
    assert summarize([(0, 0)]) == (0.0, "F", 0.0)


def test_zero_fill_for_student_without_submissions(db, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)
    seed.assignment(klass, "A", max_score=100)
    seed.assignment(klass, "B", max_score=50)

    result = GPACalculator(db).compute_class_gpa(student.id, klass.id)

    assert result.percentage == 0
    assert result.letter_grade == "F"
    assert result.gpa == 0.0
    assert result.total_items == 2
    assert result.missed_items == 2


def test_partial_credit(db, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)
    a = seed.assignment(klass, "A", max_score=100)
    seed.assignment(klass, "B", max_score=50)
    seed.submit(a, student, score=90)

    result = GPACalculator(db).compute_class_gpa(student.id, klass.id)

    assert result.percentage == 60.0
    assert result.letter_grade == "D"
    assert result.gpa == 0.7
    assert result.completed_items == 1
    assert result.total_points_earned == 90
    assert result.total_points_possible == 150


def test_ungraded_submission_counts_as_zero_but_completed(db, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)
    a = seed.assignment(klass, "A", max_score=100)
    seed.submit(a, student)

    result = GPACalculator(db).compute_class_gpa(student.id, klass.id)

    assert result.percentage == 0
    assert result.completed_items == 1
    assert result.items[0].earned == 0
    assert result.items[0].completed is True


def test_quiz_uses_best_graded_attempt(db, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)
    q = seed.quiz(klass, max_score=20)
    seed.attempt(q, student, status="graded", score=12)
    seed.attempt(q, student, status="graded", score=18)
    seed.attempt(q, student, status="in_progress")

    result = GPACalculator(db).compute_class_gpa(student.id, klass.id)

    assert result.total_points_earned == 18
    assert result.percentage == 90.0
    assert result.letter_grade == "A"
    assert result.gpa == 3.7


def test_unpublished_items_are_ignored(db, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)
    a = seed.assignment(klass, max_score=10)
    seed.assignment(klass, max_score=1000, published=False)
    seed.submit(a, student, score=10)

    result = GPACalculator(db).compute_class_gpa(student.id, klass.id)

    assert result.total_items == 1
    assert result.percentage == 100.0
    assert result.gpa == 4.0


def test_class_without_items_is_zero(db, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)

    result = GPACalculator(db).compute_class_gpa(student.id, klass.id)

    assert (result.percentage, result.letter_grade, result.gpa) == (0, "F", 0.0)


def test_unknown_class_raises_not_found(db, seed):
    student = seed.student()
    with pytest.raises(NotFound):
        GPACalculator(db).compute_class_gpa(student.id, 9999)


def test_cumulative_is_unweighted_mean(db, seed):
    student = seed.student()
    x = seed.klass(title="X")
    y = seed.klass(title="Y")
    seed.enroll(student, x)
    seed.enroll(student, y, status=COMPLETED)

    # X: one small item, 100% -> 4.0
    a = seed.assignment(x, max_score=10)
    seed.submit(a, student, score=10)

    # Y: many items at 73% -> 2.0
    for _ in range(5):
        item = seed.assignment(y, max_score=100)
        seed.submit(item, student, score=73)

    result = GPACalculator(db).compute_cumulative_gpa(student.id)

    assert result.classes_taken == 2
    assert result.cumulative_gpa == 3.0
    assert {d.class_title for d in result.per_class_details} == {"X", "Y"}


def test_cumulative_ignores_withdrawn_classes(db, seed):
    student = seed.student()
    kept = seed.klass()
    dropped = seed.klass()
    seed.enroll(student, kept)
    seed.enroll(student, dropped, status=WITHDRAWN)
    a = seed.assignment(kept, max_score=10)
    seed.submit(a, student, score=10)
    seed.assignment(dropped, max_score=10)

    result = GPACalculator(db).compute_cumulative_gpa(student.id)

    assert result.classes_taken == 1
    assert result.cumulative_gpa == 4.0


def test_cumulative_with_no_classes(db, seed):
    student = seed.student()

    result = GPACalculator(db).compute_cumulative_gpa(student.id)

    assert result.cumulative_gpa == 0
    assert result.classes_taken == 0
    assert result.per_class_details == []
