from __future__ import annotations

from stopover_agent.application.ports.catalog import CatalogPort
from stopover_agent.domain.entities.catalog import HotelOption, StopoverCategory, TourOption, TransferOption
from stopover_agent.infrastructure.knowledge.catalog_data import (
    AIRPORT_TRANSFER,
    HOTELS,
    RECOMMENDED_TOUR_ID,
    STOPOVER_CATEGORIES,
    TOURS,
)


class StaticCatalogStore(CatalogPort):
    def __init__(
        self,
        categories: dict[str, StopoverCategory] | None = None,
        hotels: dict[str, HotelOption] | None = None,
        tours: dict[str, TourOption] | None = None,
        transfer: TransferOption | None = None,
        recommended_tour_id: str = RECOMMENDED_TOUR_ID,
    ) -> None:
        self._categories = categories or STOPOVER_CATEGORIES
        self._hotels = hotels or HOTELS
        self._tours = tours or TOURS
        self._transfer = transfer or AIRPORT_TRANSFER
        self._recommended_tour_id = recommended_tour_id

    def list_categories(self) -> list[StopoverCategory]:
        return list(self._categories.values())

    def get_category(self, category_id: str) -> StopoverCategory | None:
        return self._categories.get(_normalize_key(category_id))

    def list_hotels(self) -> list[HotelOption]:
        return list(self._hotels.values())

    def get_hotel(self, hotel_id: str) -> HotelOption | None:
        return self._hotels.get(_normalize_key(hotel_id))

    def list_tours(self) -> list[TourOption]:
        return list(self._tours.values())

    def get_tour(self, tour_id: str) -> TourOption | None:
        return self._tours.get(_normalize_key(tour_id))

    def recommended_tour(self) -> TourOption:
        return self._tours.get(self._recommended_tour_id) or next(iter(self._tours.values()))

    def default_transfer(self) -> TransferOption:
        return self._transfer


def _normalize_key(key: str) -> str:
    return (key or "").strip().lower().replace(" ", "-")
