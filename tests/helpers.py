"""
Shared test helpers
"""
from datetime import datetime, timedelta


def correct_answers(exam, count=None):
    """Answer list with the first `count` questions right and the rest wrong"""
    answers = []
    for index, question in enumerate(exam.questions):
        right = count is None or index < count
        answers.append({
            'question_id': question.id,
            'selected_option': question.correct_option if right else question.incorrect_options[0],
        })
    return answers


def past(minutes):
    return datetime.utcnow() - timedelta(minutes=minutes)


def future(minutes):
    return datetime.utcnow() + timedelta(minutes=minutes)
