"""Operating-region bounding box parsing and containment checks."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    """Rectangular WGS84 region considered valid for the service.

    Coordinates outside the box are presumed to be provider confusion
    (similarly named streets elsewhere) rather than real stops.
    """

    west: float
    south: float
    east: float
    north: float

    def __post_init__(self) -> None:
        if not (-180 <= self.west < self.east <= 180):
            msg = f"bounding box needs -180 <= west < east <= 180, got west={self.west} east={self.east}"
            raise ValueError(msg)
        if not (-90 <= self.south < self.north <= 90):
            msg = f"bounding box needs -90 <= south < north <= 90, got south={self.south} north={self.north}"
            raise ValueError(msg)

    @classmethod
    def parse(cls, raw: str) -> "BoundingBox":
        """Parse a ``west,south,east,north`` string.

        Args:
            raw: Comma-separated bounds, e.g. ``"-74.5,40.2,-72.5,41.2"``.

        Returns:
            The parsed BoundingBox.

        Raises:
            ValueError: If the string does not hold four numbers or the
                bounds are inverted.
        """
        parts = [p.strip() for p in raw.split(",")]
        if len(parts) != 4:
            msg = f"bounding box must be west,south,east,north; got {raw!r}"
            raise ValueError(msg)
        try:
            west, south, east, north = (float(p) for p in parts)
        except ValueError as e:
            msg = f"bounding box values must be numbers; got {raw!r}"
            raise ValueError(msg) from e
        return cls(west=west, south=south, east=east, north=north)

    def contains(self, lat: float | None, lng: float | None) -> bool:
        """Whether a coordinate lies inside the box (edges inclusive).

        A missing coordinate is never inside.
        """
        if lat is None or lng is None:
            return False
        return self.west <= lng <= self.east and self.south <= lat <= self.north

    def as_dict(self) -> dict[str, float]:
        return {"west": self.west, "south": self.south, "east": self.east, "north": self.north}

    def __str__(self) -> str:
        return f"{self.west},{self.south},{self.east},{self.north}"
