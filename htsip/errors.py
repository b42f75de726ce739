"""Exceptions raised by htsip.

All of them derive from ValueError: each one means the input tables do not
have the structure the computation needs.
"""
from __future__ import annotations

from typing import Iterable


class HTSIPError(ValueError):
    """Base class for structural input errors."""


class MissingColumn(HTSIPError):
    def __init__(self, columns: Iterable[str], where: str = "table"):
        self.columns = list(columns)
        super().__init__(f"Missing column(s) in {where}: {', '.join(map(str, self.columns))}")


class EmptyPartition(HTSIPError):
    def __init__(self, side: str):
        self.side = side
        super().__init__(f"No {side} samples after control/treatment classification")


class NoOverlap(HTSIPError):
    def __init__(self, n_control: int, n_treatment: int):
        super().__init__(
            f"None of the {n_control} control x {n_treatment} treatment fraction windows overlap; "
            "the gradients do not span comparable buoyant density ranges"
        )


class UnsupportedIsotope(HTSIPError):
    def __init__(self, isotope):
        self.isotope = isotope
        super().__init__(f"Isotope not recognized: {isotope!r} (expected '13C' or '18O')")


def require_columns(df, columns: Iterable[str], where: str = "table") -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MissingColumn(missing, where)
