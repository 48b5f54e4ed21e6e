"""Exam grading and the answer-free view of an exam given to trainees"""
import random

from backend.core.utils import round_half_up


def normalize_indices(values):
    """Selected/correct answers as a sorted list of ints; None when malformed"""
    if not isinstance(values, (list, tuple)):
        values = [values]
    try:
        return sorted(int(value) for value in values)
    except (TypeError, ValueError):
        return None


def grade_answers(questions, submitted):
    """
    Grade submitted answers against the exam questions.

    A question counts as correct only when the selected option indices equal
    the correct ones exactly. Answers to unknown questions earn nothing.
    Returns (graded_answers, points_earned, total_points).
    """
    by_id = {question.id: question for question in questions}
    total_points = sum(question.points for question in questions)
    graded, seen = [], set()
    points_earned = 0

    for answer in submitted or []:
        if not isinstance(answer, dict):
            continue
        try:
            question_id = int(answer.get('question_id'))
        except (TypeError, ValueError):
            question_id = None
        if question_id in seen:
            continue
        seen.add(question_id)

        selected = normalize_indices(answer.get('selected_answers', []))
        question = by_id.get(question_id)
        is_correct = (
            question is not None
            and selected is not None
            and selected == normalize_indices(question.correct_answers)
        )
        points = question.points if is_correct else 0
        points_earned += points
        graded.append({
            'question_id': question_id if question_id is not None else answer.get('question_id'),
            'selected_answers': selected if selected is not None else [],
            'is_correct': is_correct,
            'points_earned': points,
        })

    return graded, points_earned, total_points


def score_percentage(points_earned, total_points):
    if not total_points:
        return 0
    return round_half_up(points_earned / total_points * 100)


def questions_for_taking(exam, rng=None):
    """Questions without answers; options keep their stored index so grading is unaffected by shuffling"""
    rng = rng or random.Random()
    questions = list(exam.questions.all())
    if exam.shuffle_questions:
        rng.shuffle(questions)

    payload = []
    for question in questions:
        options = [{'index': index, 'text': text} for index, text in enumerate(question.options)]
        if exam.shuffle_options:
            rng.shuffle(options)
        payload.append({
            'id': question.id,
            'question_text': question.question_text,
            'question_type': question.question_type,
            'options': options,
            'points': question.points,
        })
    return payload
