"""
Ordered composition of transforms.

Forward application runs the members in list order:

    chain(p) = T_n( ... T_2(T_1(p)))

Inverse application depends on `inverse_order`:
- "reversed" (default): T_1^-1( ... T_n^-1(p)), the mathematical inverse
  of the forward composition
- "forward": T_n^-1( ... T_1^-1(p)), members inverted but kept in list
  order. Only equivalent to "reversed" when the members commute.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Literal, Optional

import numpy as np

from ..exceptions import UnsupportedOperationError
from ..types import FloatArray, Points, PointsLike
from .base import TransformModel, TransformType

InverseOrder = Literal["reversed", "forward"]


class TransformChain(TransformModel):
    """
    A list of TransformModel sharing one dimension, applied in sequence.

    The chain itself cannot be estimated from correspondences: compute() and
    minimum_points() raise UnsupportedOperationError.
    """

    transform_type = TransformType.chain

    def __init__(
        self,
        transforms: Iterable[TransformModel] = (),
        inverse_order: InverseOrder = "reversed",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if inverse_order not in ("reversed", "forward"):
            raise ValueError(f"inverse_order must be 'reversed' or 'forward', got {inverse_order!r}")
        self.inverse_order = inverse_order
        self._transforms: list[TransformModel] = []
        self.extend(transforms)

    # ---------- Dimension ----------
    @property
    def dimension(self) -> int:  # type: ignore[override]
        if self._transforms:
            return self._transforms[0].dimension
        return 2

    def _check_member(self, trf: TransformModel) -> None:
        if not isinstance(trf, TransformModel):
            raise TypeError(f"Expected a TransformModel, got {type(trf).__name__}")
        if self._transforms and trf.dimension != self._transforms[0].dimension:
            raise ValueError(
                f"Cannot mix {trf.dimension}D and {self._transforms[0].dimension}D transforms in a chain"
            )

    # ---------- List API ----------
    def append(self, trf: TransformModel) -> None:
        self._check_member(trf)
        self._transforms.append(trf)

    def extend(self, transforms: Iterable[TransformModel]) -> None:
        for trf in transforms:
            self.append(trf)

    def insert(self, index: int, trf: TransformModel) -> None:
        self._check_member(trf)
        self._transforms.insert(index, trf)

    def remove_at(self, index: int) -> TransformModel:
        return self._transforms.pop(index)

    def __delitem__(self, index: int) -> None:
        del self._transforms[index]

    def clear(self) -> None:
        self._transforms.clear()

    def __len__(self) -> int:
        return len(self._transforms)

    def __iter__(self) -> Iterator[TransformModel]:
        return iter(self._transforms)

    def __getitem__(self, index: int) -> TransformModel:
        return self._transforms[index]

    def front(self) -> TransformModel:
        if not self._transforms:
            raise IndexError("front() on an empty chain")
        return self._transforms[0]

    def back(self) -> TransformModel:
        if not self._transforms:
            raise IndexError("back() on an empty chain")
        return self._transforms[-1]

    def empty(self) -> bool:
        return not self._transforms

    # ---------- Estimation (unsupported) ----------
    def minimum_points(self) -> int:
        raise UnsupportedOperationError("A transform chain has no minimum number of points")

    def is_number_of_points_valid(self, n: int) -> bool:
        raise UnsupportedOperationError("A transform chain cannot be estimated")

    def compute(self, source: PointsLike, target: PointsLike) -> bool:
        raise UnsupportedOperationError(
            "A transform chain cannot be estimated, compute its members instead"
        )

    def _estimate(self, src: Points, dst: Points) -> bool:
        raise UnsupportedOperationError("A transform chain cannot be estimated")

    # ---------- Application ----------
    def _forward(self, pts: Points) -> Points:
        out = pts
        for trf in self._transforms:
            out = trf.transform_points(out, direct=True)
        return out

    def _backward(self, pts: Points) -> Points:
        members = self._transforms[::-1] if self.inverse_order == "reversed" else self._transforms
        out = pts
        for trf in members:
            out = trf.transform_points(out, direct=False)
        return out

    def transform_points(
            self,
            points: PointsLike,
            direct: bool = True,
            *,
            out: Optional[FloatArray] = None,
            workers: Optional[int] = None,
    ) -> Points:
        # copy so that members never see a caller-owned array that `out` aliases
        pts = np.array(points, dtype=np.float64)
        return super().transform_points(pts, direct, out=out, workers=workers)

    def is_invertible(self) -> bool:
        return all(trf.is_invertible() for trf in self._transforms)

    # ---------- Parameters ----------
    def parameters(self) -> dict[str, Any]:
        return {"transforms": list(self._transforms), "inverse_order": self.inverse_order}

    def inverse(self) -> "TransformChain":
        """Chain of the inverted members in reverse order (always the true inverse)."""
        return TransformChain(
            [trf.inverse() for trf in reversed(self._transforms)],
            inverse_order=self.inverse_order,
            **self._options(),
        )

    def is_identity(self) -> bool:
        return all(trf.is_identity() for trf in self._transforms)

    def rmse(self, source: PointsLike, target: PointsLike):
        raise UnsupportedOperationError("A transform chain cannot be estimated")

    def __repr__(self) -> str:
        members = ", ".join(repr(trf) for trf in self._transforms)
        return f"TransformChain([{members}], inverse_order={self.inverse_order!r})"
