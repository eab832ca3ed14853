from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import List, Tuple, Optional, Sequence

from errors import ConfigurationError, OutOfRangeError

DEFAULT_CEILING = 3000.0

Point = Tuple[float, float]


@dataclass(frozen=True)
class Segment:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class LandingZone:
    x_min: float
    x_max: float
    y: float
    first_seg: int  # index of the first segment of the flat run
    last_seg: int   # index of the last segment of the flat run (inclusive)

    @property
    def center(self) -> float:
        return 0.5 * (self.x_min + self.x_max)

    @property
    def half_width(self) -> float:
        return 0.5 * (self.x_max - self.x_min)

    def contains_x(self, x: float) -> bool:
        return self.x_min <= x <= self.x_max

    def contains_segment(self, seg_idx: int) -> bool:
        return self.first_seg <= seg_idx <= self.last_seg


@dataclass(frozen=True)
class Crossing:
    point: Point
    seg_idx: int
    on_landing_zone: bool


@dataclass
class Terrain:
    """Ground profile as a polyline with strictly increasing x and one flat run."""
    points: List[Point]
    segments: List[Segment]
    zone: LandingZone
    ceiling: float = DEFAULT_CEILING

    def __post_init__(self) -> None:
        self._xs = [p[0] for p in self.points]

    @property
    def x_min(self) -> float:
        return self.points[0][0]

    @property
    def x_max(self) -> float:
        return self.points[-1][0]

    def landing_zone(self) -> LandingZone:
        return self.zone

    @classmethod
    def from_points(cls, points: Sequence[Tuple[float, float]], ceiling: float = DEFAULT_CEILING) -> "Terrain":
        if len(points) < 2:
            raise ConfigurationError("Need at least two surface points to build terrain")
        pts: List[Point] = []
        for p in points:
            try:
                x, y = float(p[0]), float(p[1])
            except (TypeError, ValueError, IndexError):
                raise ConfigurationError(f"Terrain has to contain numeric points, got {p!r}")
            if not (math.isfinite(x) and math.isfinite(y)):
                raise ConfigurationError(f"Terrain point {p!r} is not finite")
            pts.append((x, y))

        segs: List[Segment] = []
        for i in range(len(pts) - 1):
            (x1, y1) = pts[i]
            (x2, y2) = pts[i + 1]
            if x2 <= x1:
                raise ConfigurationError(
                    f"Terrain x must be strictly increasing (point {i + 1}: {x2} after {x1})"
                )
            segs.append(Segment(x1, y1, x2, y2))

        # Maximal runs of consecutive flat segments
        runs: List[Tuple[int, int]] = []
        start: Optional[int] = None
        for i, s in enumerate(segs):
            if s.y1 == s.y2:
                if start is None:
                    start = i
            elif start is not None:
                runs.append((start, i - 1))
                start = None
        if start is not None:
            runs.append((start, len(segs) - 1))
        if not runs:
            raise ConfigurationError("No flat landing zone found in terrain points")
        if len(runs) > 1:
            raise ConfigurationError(f"Multiple flat runs found ({len(runs)}); expected exactly one")

        first, last = runs[0]
        zone = LandingZone(
            x_min=segs[first].x1,
            x_max=segs[last].x2,
            y=segs[first].y1,
            first_seg=first,
            last_seg=last,
        )
        if not math.isfinite(ceiling) or ceiling <= max(y for _, y in pts):
            raise ConfigurationError(f"Ceiling {ceiling} must lie above every terrain point")
        return cls(pts, segs, zone, float(ceiling))

    def height_at(self, x: float) -> float:
        """Ground altitude below x, linearly interpolated between bracketing points."""
        if not (self.x_min <= x <= self.x_max):
            raise OutOfRangeError(f"x={x} outside terrain extent [{self.x_min}, {self.x_max}]")
        i = bisect.bisect_right(self._xs, x) - 1
        if i >= len(self.segments):
            return self.points[-1][1]
        s = self.segments[i]
        t = (x - s.x1) / (s.x2 - s.x1)
        return s.y1 + t * (s.y2 - s.y1)

    def distance_to_zone_center(self, x: float, y: float) -> float:
        dx = x - self.zone.center
        dy = y - self.zone.y
        return (dx * dx + dy * dy) ** 0.5

    @staticmethod
    def _cross(ax: float, ay: float, bx: float, by: float) -> float:
        return ax * by - ay * bx

    def segment_crosses(self, p1: Point, p2: Point) -> Optional[Crossing]:
        """
        Earliest crossing (if any) between the movement p1->p2 and any terrain segment.
        Collinear overlaps count as a crossing at the first overlapping point.
        """
        px, py = p1
        rx, ry = p2[0] - px, p2[1] - py
        rr = rx * rx + ry * ry
        best_t: Optional[float] = None
        best_idx: int = -1

        for idx, s in enumerate(self.segments):
            qx, qy = s.x1, s.y1
            sx_, sy_ = s.x2 - s.x1, s.y2 - s.y1
            rxs = self._cross(rx, ry, sx_, sy_)
            q_p_x, q_p_y = qx - px, qy - py
            q_pxr = self._cross(q_p_x, q_p_y, rx, ry)
            if rxs == 0.0:
                if q_pxr != 0.0 or rr == 0.0:
                    # Parallel, or no movement at all
                    continue
                # Collinear: project the terrain segment onto the path
                t0 = (q_p_x * rx + q_p_y * ry) / rr
                t1 = t0 + (sx_ * rx + sy_ * ry) / rr
                lo, hi = min(t0, t1), max(t0, t1)
                if lo > 1.0 or hi < 0.0:
                    continue
                t = max(0.0, lo)
            else:
                t = self._cross(q_p_x, q_p_y, sx_, sy_) / rxs
                u = q_pxr / rxs
                if not (0.0 <= t <= 1.0 and 0.0 <= u <= 1.0):
                    continue
            # On a tie at a shared vertex the landing zone wins
            if best_t is None or t < best_t or (t == best_t and self.zone.contains_segment(idx)):
                best_t = t
                best_idx = idx

        if best_t is None:
            return None
        point = (px + best_t * rx, py + best_t * ry)
        return Crossing(point, best_idx, self.zone.contains_segment(best_idx))
