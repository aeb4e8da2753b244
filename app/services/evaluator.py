from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence

from app.services.content_builder import normalize_text


OUT_OF_RANGE = "Word index out of range"


@dataclass(frozen=True)
class Answer:
    item_index: int
    text: str


@dataclass(frozen=True)
class ItemResult:
    """Результат по одному ответу; error != None -> ответ не проверялся."""
    item_index: int
    text: str
    is_correct: bool
    correct_answer: str
    error: Optional[str] = None


@dataclass(frozen=True)
class Evaluation:
    total: int
    correct: int
    incorrect: int
    score: int
    max_score: int
    percentage: float
    results: List[ItemResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def evaluate(content: Dict[str, Any], answers: Sequence[Answer]) -> Evaluation:
    """Проверка ответов. Чистая функция: одинаковый вход -> одинаковый выход.

    Ответ с индексом вне диапазона не роняет всю пачку, а попадает в
    results с ошибкой.
    """
    items = content.get("items") or []
    score_per_item = int(content.get("score_per_item") or 0)

    results: List[ItemResult] = []
    correct = 0

    for answer in answers:
        text = normalize_text(answer.text)

        if answer.item_index < 0 or answer.item_index >= len(items):
            results.append(ItemResult(
                item_index=answer.item_index,
                text=text,
                is_correct=False,
                correct_answer="N/A",
                error=OUT_OF_RANGE,
            ))
            continue

        expected = items[answer.item_index]["text"]
        is_correct = text == expected
        if is_correct:
            correct += 1

        results.append(ItemResult(
            item_index=answer.item_index,
            text=text,
            is_correct=is_correct,
            correct_answer=expected,
        ))

    score = correct * score_per_item
    max_score = len(items) * score_per_item
    percentage = round(score / max_score * 100, 2) if max_score > 0 else 0

    return Evaluation(
        total=len(items),
        correct=correct,
        incorrect=len(answers) - correct,
        score=score,
        max_score=max_score,
        percentage=percentage,
        results=results,
    )
