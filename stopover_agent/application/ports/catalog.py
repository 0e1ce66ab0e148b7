from __future__ import annotations

from abc import ABC, abstractmethod

from stopover_agent.domain.entities.catalog import HotelOption, StopoverCategory, TourOption, TransferOption


class CatalogPort(ABC):
    @abstractmethod
    def list_categories(self) -> list[StopoverCategory]:
        raise NotImplementedError

    @abstractmethod
    def get_category(self, category_id: str) -> StopoverCategory | None:
        """Get stopover category by id (case-insensitive)."""
        raise NotImplementedError

    @abstractmethod
    def list_hotels(self) -> list[HotelOption]:
        raise NotImplementedError

    @abstractmethod
    def get_hotel(self, hotel_id: str) -> HotelOption | None:
        raise NotImplementedError

    @abstractmethod
    def list_tours(self) -> list[TourOption]:
        raise NotImplementedError

    @abstractmethod
    def get_tour(self, tour_id: str) -> TourOption | None:
        raise NotImplementedError

    @abstractmethod
    def recommended_tour(self) -> TourOption:
        """Tour highlighted on the extras step."""
        raise NotImplementedError

    @abstractmethod
    def default_transfer(self) -> TransferOption:
        raise NotImplementedError
