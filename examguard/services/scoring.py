"""
Scoring Engine - maps submitted answers onto an exam's answer key

Pure and deterministic: the same answers and question set always produce the
same result, so disputed grades can be replayed.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

PASS_THRESHOLD = 50

AnswerInput = Union[Mapping[str, Any], Iterable[Mapping[str, Any]], None]


@dataclass(frozen=True)
class ScoreResult:
    score: int
    is_passed: bool
    correct_count: int
    total_questions: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "is_passed": self.is_passed,
            "correct_count": self.correct_count,
            "total_questions": self.total_questions,
        }


def normalize_answers(answers: AnswerInput) -> Dict[str, Any]:
    """
    Accept either a {question_id: option} mapping or a list of
    {"question_id": ..., "selected_option": ...} items.

    Later entries for the same question replace earlier ones, so a duplicated
    answer can never be counted twice.
    """
    if not answers:
        return {}

    if isinstance(answers, Mapping):
        return {str(qid): option for qid, option in answers.items()}

    normalized = {}
    for item in answers:
        if not isinstance(item, Mapping):
            continue
        qid = item.get("question_id", item.get("questionId"))
        if qid is None:
            continue
        normalized[str(qid)] = item.get("selected_option", item.get("selectedOption"))
    return normalized


def percentage(correct: int, total: int) -> int:
    """round(correct / total * 100), half-up, in integer arithmetic"""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def score_answers(
    answers: AnswerInput,
    answer_key: Iterable[Any],
    pass_threshold: Optional[int] = None
) -> ScoreResult:
    """
    Score an answer set against the exam's questions.

    Args:
        answers: question id -> selected option value (or list form)
        answer_key: questions with `id` and `correct_option`, or
            (question_id, correct_option) pairs
        pass_threshold: score needed to pass (defaults to PASS_THRESHOLD)

    Returns:
        ScoreResult; an exam without questions scores 0
    """
    threshold = PASS_THRESHOLD if pass_threshold is None else pass_threshold
    submitted = normalize_answers(answers)

    keys: List[tuple] = []
    for entry in answer_key:
        if isinstance(entry, tuple):
            keys.append((str(entry[0]), entry[1]))
        else:
            keys.append((str(entry.id), entry.correct_option))

    correct = 0
    for question_id, correct_option in keys:
        if question_id in submitted and submitted[question_id] == correct_option:
            correct += 1

    score = percentage(correct, len(keys))

    return ScoreResult(
        score=score,
        is_passed=score >= threshold,
        correct_count=correct,
        total_questions=len(keys),
    )
