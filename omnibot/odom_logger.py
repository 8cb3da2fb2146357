"""Append odometry samples to a CSV file."""

from __future__ import annotations

import os
from collections.abc import Sequence
from types import TracebackType

from .geometry import Quaternion

__all__ = ["HEADER", "OdomLogger"]

HEADER = (
    "Time,Position_X,Position_Y,Position_Z,"
    "Orientation_X,Orientation_Y,Orientation_Z,Orientation_W"
)


class OdomLogger:
    """Writes one CSV row per odometry message; the file is truncated on open."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = path
        self._file = open(path, "w", encoding="utf-8", newline="")
        self._file.write(HEADER + "\n")

    def log(self, stamp: float, position: Sequence[float], orientation: Quaternion) -> None:
        """Write the time, position (x, y, z) and orientation quaternion."""
        if self._file.closed:
            raise ValueError("odometry log is closed")
        if len(position) != 3:
            raise ValueError(f"expected a 3D position, got {len(position)} values")
        values = (
            stamp,
            *position,
            orientation.x,
            orientation.y,
            orientation.z,
            orientation.w,
        )
        self._file.write(",".join(format(float(v), "g") for v in values) + "\n")

    def close(self) -> None:
        """Flush and close the file."""
        self._file.close()

    @property
    def closed(self) -> bool:
        return self._file.closed

    def __enter__(self) -> OdomLogger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()