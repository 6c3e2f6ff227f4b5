import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np

from georender.config.settings import DEFAULT_TILE_SIZE_M


class Direction(Enum):
    Above = 0
    Below = 1
    Left = 2
    Right = 3

    @classmethod
    def from_string(cls, value: str) -> "Direction":
        """
        Method for converting a string to an enum
        :param value: to be converted
        :return: Direction Enum Entry
        """
        value = value.lower()

        if value in ["a", "above", "top"]:
            return Direction.Above
        elif value in ["b", "below", "bottom"]:
            return Direction.Below
        elif value in ["l", "left"]:
            return Direction.Left
        elif value in ["r", "right"]:
            return Direction.Right
        raise ValueError(f"Unknown direction {value}")

    @property
    def offset(self) -> Tuple[int, int]:
        """
        :return: Grid offset (dx, dy) of the neighbour in this direction
        """
        if self == Direction.Above:
            return 0, -1
        elif self == Direction.Below:
            return 0, 1
        elif self == Direction.Left:
            return -1, 0
        return 1, 0


@dataclass(frozen=True, order=True)
class TileCoordinate:
    """
    Integer address of a square terrain tile; the tile covers [x, x + 1) x [y, y + 1) in tile units
    """
    x: int
    y: int

    @classmethod
    def from_world(cls, point: Sequence[float], tile_size_m: float = DEFAULT_TILE_SIZE_M) -> "TileCoordinate":
        """
        Method for finding the tile containing a world position
        :param point: world position (only x and y are used)
        :param tile_size_m: edge length of a tile in meters
        :return: TileCoordinate of the containing tile
        """
        return cls(int(math.floor(point[0] / tile_size_m)), int(math.floor(point[1] / tile_size_m)))

    def to_world_origin(self, tile_size_m: float = DEFAULT_TILE_SIZE_M) -> np.ndarray:
        """
        :param tile_size_m: edge length of a tile in meters
        :return: World position (x, y, 0) of the tile's origin corner
        """
        return np.array([self.x * tile_size_m, self.y * tile_size_m, 0.0])

    def neighbor(self, direction: Direction) -> "TileCoordinate":
        dx, dy = direction.offset
        return TileCoordinate(self.x + dx, self.y + dy)

    def above(self) -> "TileCoordinate":
        return self.neighbor(Direction.Above)

    def below(self) -> "TileCoordinate":
        return self.neighbor(Direction.Below)

    def left(self) -> "TileCoordinate":
        return self.neighbor(Direction.Left)

    def right(self) -> "TileCoordinate":
        return self.neighbor(Direction.Right)

    def circle_within_radius_m(self, radius_m: float, tile_size_m: float = DEFAULT_TILE_SIZE_M) -> List["TileCoordinate"]:
        """
        Method for collecting all tiles within a metric radius around this tile.
        The radius is rounded up to full tiles, so no tile within the true radius is missed.
        :param radius_m: radius in meters
        :param tile_size_m: edge length of a tile in meters
        :return: List of tile coordinates
        """
        return self.circle_within_radius_cells(int(math.floor(radius_m / tile_size_m)) + 1)

    def circle_within_radius_cells(self, radius: int) -> List["TileCoordinate"]:
        """
        Method for collecting all tiles (dx, dy) with dx^2 + dy^2 <= radius^2 around this tile
        :param radius: radius in tiles
        :return: List of tile coordinates
        """
        result = []
        for x in range(self.x - radius, self.x + radius + 1):
            for y in range(self.y - radius, self.y + radius + 1):
                dx = x - self.x
                dy = y - self.y
                if dx * dx + dy * dy <= radius * radius:
                    result.append(TileCoordinate(x, y))
        return result

    def min_corner_distance_m(self, other: "TileCoordinate", tile_size_m: float = DEFAULT_TILE_SIZE_M) -> float:
        """
        Distance of the closest two corners, i.e. 0 for direct 8-neighbours
        :param other: tile to which the distance should be calculated
        :param tile_size_m: edge length of a tile in meters
        :return: distance in meters
        """
        dx = max(abs(other.x - self.x) - 1, 0)
        dy = max(abs(other.y - self.y) - 1, 0)
        return math.sqrt(dx * dx + dy * dy) * tile_size_m

    def __str__(self):
        return f"{self.x}-{self.y}"
