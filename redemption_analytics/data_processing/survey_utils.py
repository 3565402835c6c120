"""Survey response parsing.

Survey answers live in ``proposition_NN`` columns; one cell may hold several
selected answers separated by ``;``. The paired ``question_NN`` column carries
the question text. Percentages always use the number of responding records
as denominator, never the number of answer tokens.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

import pandas as pd

from ..data_prep.field_desc_utils import survey_question_numbers
from ..data_prep.field_value_utils import is_missing
from .dashboard_params import (
    AGE_GROUP_ORDER,
    NOT_SPECIFIED,
    PROPOSITION_PREFIX,
    QUESTION_PREFIX,
    SURVEY_DELIMITER,
)
from .distribution_utils import distribution, order_by_preference

_LOG = logging.getLogger(__name__)

DEMOGRAPHIC_FIELDS = {'gender': 'gender', 'age': 'age_group'}


def normalize_question_number(question_number) -> str:
    """1, '1', '01' and 'proposition_1' all become '01'."""
    text = str(question_number).strip()
    for prefix in (PROPOSITION_PREFIX, QUESTION_PREFIX):
        if text.startswith(prefix):
            text = text[len(prefix):]
    if not text.isdigit():
        raise ValueError(f"Question number must be numeric, got {question_number!r}")
    return f"{int(text):02d}"


def split_responses(value, delimiter: str = SURVEY_DELIMITER) -> list[str]:
    """'Yes; Maybe ;' -> ['Yes', 'Maybe']."""
    if is_missing(value):
        return []
    return [t.strip() for t in str(value).split(delimiter) if t.strip()]


@dataclass
class GroupBreakdown:
    total: int = 0
    response_breakdown: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {'total': self.total, 'responseBreakdown': dict(self.response_breakdown)}


@dataclass
class SurveyQuestion:
    number: str
    text: str
    total_responses: int
    counts: dict
    percentages: dict
    demographics: dict

    def responses_frame(self) -> pd.DataFrame:
        """Response / Count / Percentage table, most frequent first."""
        return pd.DataFrame({
            'Response': list(self.counts),
            'Count': [self.counts[r] for r in self.counts],
            'Percentage': [self.percentages[r] for r in self.counts],
        })

    def to_dict(self) -> dict:
        return {
            'number': self.number,
            'text': self.text,
            'totalResponses': self.total_responses,
            'counts': dict(self.counts),
            'percentages': dict(self.percentages),
            'demographics': {
                dim: {group: b.to_dict() for group, b in groups.items()}
                for dim, groups in self.demographics.items()
            },
        }


def _column(records: pd.DataFrame, name: str) -> pd.Series:
    if records is not None and name in records.columns:
        return records[name]
    if records is None:
        return pd.Series([], dtype=object)
    return pd.Series([None] * len(records), index=records.index, dtype=object)


def _question_text(records: pd.DataFrame, number: str) -> str:
    for v in _column(records, f"{QUESTION_PREFIX}{number}"):
        if not is_missing(v):
            return str(v).strip()
    return f"Question {int(number)}"


def _cross_tab(groups: Iterable, token_lists: Iterable[list[str]], order: Optional[list] = None) -> dict:
    tab: dict[str, GroupBreakdown] = {}
    for group, tokens in zip(groups, token_lists):
        if is_missing(group):
            continue
        group = str(group).strip()
        entry = tab.setdefault(group, GroupBreakdown())
        entry.total += 1
        for token in dict.fromkeys(tokens):
            entry.response_breakdown[token] = entry.response_breakdown.get(token, 0) + 1
    if order is not None:
        names = order_by_preference(list(tab), order)
    else:
        names = sorted(tab, key=lambda g: (-tab[g].total, g))
    return {g: tab[g] for g in names}


def parse_question(records: pd.DataFrame, question_number, delimiter: str = SURVEY_DELIMITER) -> SurveyQuestion:
    """Parse one survey question.

    Args:
        records: Record frame (usually already filtered).
        question_number: Number of the question (``1``, ``"01"``, ...).
        delimiter: Separator between multiple answers in one cell.
    Returns:
        SurveyQuestion: ``counts`` tallies every answer token across all records;
            ``total_responses`` is the number of records with a non-empty answer and
            is the denominator of ``percentages``. The demographic breakdowns count,
            per group, the records containing each answer.
    """
    number = normalize_question_number(question_number)
    answers = _column(records, f"{PROPOSITION_PREFIX}{number}")
    # a non-blank cell is a response even when it yields no tokens (" ; ")
    responding = ~answers.map(is_missing).astype(bool)
    tokens = answers[responding].map(lambda v: split_responses(v, delimiter))

    counter: Counter = Counter()
    for row in tokens:
        counter.update(row)
    counts = dict(counter.most_common())
    total = int(responding.sum())
    percentages = {r: (c / total * 100.0 if total else 0.0) for r, c in counts.items()}

    demographics = {}
    for dim, field_name in DEMOGRAPHIC_FIELDS.items():
        groups = _column(records, field_name)[responding]
        demographics[dim] = _cross_tab(groups.tolist(), tokens.tolist(),
                                       AGE_GROUP_ORDER if dim == 'age' else None)

    return SurveyQuestion(
        number=number,
        text=_question_text(records, number),
        total_responses=total,
        counts=counts,
        percentages=percentages,
        demographics=demographics,
    )


def discover_questions(records: pd.DataFrame) -> list[str]:
    """Question numbers with a ``proposition_NN`` or ``question_NN`` column."""
    if records is None:
        return []
    nums = set(survey_question_numbers(records.columns, PROPOSITION_PREFIX))
    nums.update(survey_question_numbers(records.columns, QUESTION_PREFIX))
    return sorted(nums)


@dataclass
class SurveyResults:
    questions: dict
    total_respondents: int

    def to_dict(self) -> dict:
        return {
            'questions': {n: q.to_dict() for n, q in self.questions.items()},
            'meta': {
                'totalRespondents': self.total_respondents,
                'questionCount': len(self.questions),
            },
        }


def parse_survey(
    records: pd.DataFrame,
    question_numbers: Optional[Iterable] = None,
    delimiter: str = SURVEY_DELIMITER,
) -> SurveyResults:
    """Parse every (or the given) survey question.

    ``total_respondents`` counts records answering at least one parsed question.
    """
    numbers = discover_questions(records) if question_numbers is None \
        else [normalize_question_number(n) for n in question_numbers]
    questions = {n: parse_question(records, n, delimiter) for n in numbers}

    respondents = 0
    if records is not None and not records.empty and numbers:
        answered = pd.Series(False, index=records.index)
        for n in numbers:
            answers = _column(records, f"{PROPOSITION_PREFIX}{n}")
            answered |= ~answers.map(is_missing).astype(bool).to_numpy()
        respondents = int(answered.sum())
    _LOG.debug("Parsed %d survey questions from %d respondents", len(questions), respondents)
    return SurveyResults(questions=questions, total_respondents=respondents)


def response_demographics(
    records: pd.DataFrame,
    question_number,
    selected_responses: Iterable[str],
    delimiter: str = SURVEY_DELIMITER,
) -> dict:
    """Gender and age distributions of the records that picked any selected answer.

    Missing demographics are reported as 'Not Specified'.
    """
    number = normalize_question_number(question_number)
    selected = {str(s).strip() for s in selected_responses or [] if not is_missing(s)}
    answers = _column(records, f"{PROPOSITION_PREFIX}{number}")
    hit = answers.map(lambda v: bool(selected.intersection(split_responses(v, delimiter)))).astype(bool)
    if records is None or records.empty or not hit.any():
        return {'total': 0, 'gender': distribution(None, 'gender'), 'age': distribution(None, 'age_group')}

    subset = records.loc[hit.to_numpy()]
    demo = pd.DataFrame({
        'gender': _column(subset, 'gender').map(lambda v: NOT_SPECIFIED if is_missing(v) else v).to_numpy(),
        'age_group': _column(subset, 'age_group').map(lambda v: NOT_SPECIFIED if is_missing(v) else v).to_numpy(),
    })
    return {
        'total': int(len(subset)),
        'gender': distribution(demo, 'gender'),
        'age': distribution(demo, 'age_group', preferred_order=AGE_GROUP_ORDER),
    }


__all__ = [
    "GroupBreakdown",
    "SurveyQuestion",
    "SurveyResults",
    "normalize_question_number",
    "split_responses",
    "parse_question",
    "discover_questions",
    "parse_survey",
    "response_demographics",
]
