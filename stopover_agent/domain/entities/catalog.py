from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StopoverCategory:
    id: str
    name: str
    star_rating: int
    price_per_night: int
    amenities: tuple[str, ...] = ()


@dataclass(frozen=True)
class HotelOption:
    id: str
    name: str
    category: str  # e.g. "5-star", "4-star"
    star_rating: int
    price_per_night: int
    amenities: tuple[str, ...] = ()


@dataclass(frozen=True)
class TourOption:
    id: str
    name: str
    description: str
    duration: str
    price: int
    highlights: tuple[str, ...] = ()
    max_participants: int | None = None


@dataclass(frozen=True)
class TransferOption:
    id: str
    name: str
    description: str
    price: int
