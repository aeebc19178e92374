"""The four testable subjects and the subject-set string they are encoded in.

Rosters carry the registered subjects as free text such as ``"L+M+H+Đ"``,
``"lmhd"`` or ``"L, D"``.  Inside the service a subject set is always a
``frozenset`` of :class:`Subject`; the string form only exists at the
normalization boundary.
"""
from enum import Enum
from typing import FrozenSet, Iterable


class Subject(Enum):
    THEORY = "L"
    SIMULATION = "M"
    PRACTICAL_COURSE = "H"
    ON_ROAD = "D"

    @property
    def code(self) -> str:
        return self.value

    @property
    def column(self) -> str:
        """Canonical roster column holding this subject's score cell."""
        return _COLUMNS[self]

    @property
    def attr(self) -> str:
        """Attribute name of this subject on aggregate rows and fee lines."""
        return _ATTRS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


# Canonical order used everywhere subjects are listed.
SUBJECT_ORDER = (
    Subject.THEORY,
    Subject.SIMULATION,
    Subject.PRACTICAL_COURSE,
    Subject.ON_ROAD,
)

_COLUMNS = {
    Subject.THEORY: "LÝ THUYẾT",
    Subject.SIMULATION: "MÔ PHỎNG",
    Subject.PRACTICAL_COURSE: "SA HÌNH",
    Subject.ON_ROAD: "ĐƯỜNG TRƯỜNG",
}

_ATTRS = {
    Subject.THEORY: "theory",
    Subject.SIMULATION: "simulation",
    Subject.PRACTICAL_COURSE: "practical_course",
    Subject.ON_ROAD: "on_road",
}

_LABELS = {
    Subject.THEORY: "Lý thuyết",
    Subject.SIMULATION: "Mô phỏng",
    Subject.PRACTICAL_COURSE: "Sa hình",
    Subject.ON_ROAD: "Đường trường",
}

SubjectSet = FrozenSet[Subject]


def fold_subject_text(text) -> str:
    """Uppercase *text* and fold ``Đ`` to ``D``; ``None`` becomes ``""``."""
    if text is None:
        return ""
    return str(text).strip().upper().replace("Đ", "D")


def parse_subject_set(text) -> SubjectSet:
    """Return the subjects whose code letter appears anywhere in *text*.

    Separators are irrelevant: ``"L+M"``, ``"L M"`` and ``"LM"`` all parse to
    {THEORY, SIMULATION}.
    """
    folded = fold_subject_text(text)
    return frozenset(s for s in SUBJECT_ORDER if s.code in folded)


def format_subject_set(subjects: Iterable[Subject], sep: str = "+") -> str:
    chosen = set(subjects)
    return sep.join(s.code for s in SUBJECT_ORDER if s in chosen)
