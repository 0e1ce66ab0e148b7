from __future__ import annotations

from stopover_agent.domain.entities.catalog import HotelOption, StopoverCategory, TourOption, TransferOption


STOPOVER_CATEGORIES: dict[str, StopoverCategory] = {
    "standard": StopoverCategory(
        id="standard",
        name="Standard",
        star_rating=3,
        price_per_night=80,
        amenities=("Comfortable accommodation", "Room only", "WiFi access", "City center location"),
    ),
    "premium": StopoverCategory(
        id="premium",
        name="Premium",
        star_rating=4,
        price_per_night=150,
        amenities=(
            "Luxury accommodation",
            "Full breakfast buffet",
            "High-speed WiFi",
            "Fitness center access",
            "Business center",
            "Concierge service",
        ),
    ),
    "premium-beach": StopoverCategory(
        id="premium-beach",
        name="Premium Beach",
        star_rating=5,
        price_per_night=215,
        amenities=(
            "Beachclub access",
            "Full breakfast buffet",
            "Private beach access",
            "Water sports equipment",
            "Spa services",
            "Pool and beach bar",
        ),
    ),
    "luxury": StopoverCategory(
        id="luxury",
        name="Luxury",
        star_rating=5,
        price_per_night=300,
        amenities=(
            "Ultra-luxury accommodation",
            "Gourmet breakfast and dining",
            "Exclusive spa access",
            "Private pool access",
            "24/7 concierge",
            "VIP lounge access",
        ),
    ),
}

HOTELS: dict[str, HotelOption] = {
    "millennium-doha": HotelOption(
        id="millennium-doha",
        name="Millennium Hotel Doha",
        category="5-star",
        star_rating=5,
        price_per_night=180,
        amenities=("City view rooms", "Outdoor swimming pool", "Fitness center and spa", "Airport shuttle service"),
    ),
    "steigenberger-doha": HotelOption(
        id="steigenberger-doha",
        name="Steigenberger Hotel Doha",
        category="5-star",
        star_rating=5,
        price_per_night=195,
        amenities=("Rooftop pool with panoramic views", "Luxury spa", "Executive lounge access", "Valet parking"),
    ),
    "souq-waqif-boutique": HotelOption(
        id="souq-waqif-boutique",
        name="Souq Waqif Boutique Hotel",
        category="5-star deluxe",
        star_rating=5,
        price_per_night=220,
        amenities=("Traditional Qatari architecture", "Heritage courtyard dining", "Traditional hammam spa"),
    ),
    "crowne-plaza-doha": HotelOption(
        id="crowne-plaza-doha",
        name="Crowne Plaza Doha",
        category="4-star",
        star_rating=4,
        price_per_night=165,
        amenities=("Executive club floors", "Outdoor pool and sun deck", "Free airport shuttle"),
    ),
    "al-najada-doha": HotelOption(
        id="al-najada-doha",
        name="Al Najada Doha Hotel",
        category="4-star",
        star_rating=4,
        price_per_night=155,
        amenities=("Modern Arabian hospitality", "Rooftop swimming pool", "Airport transfer service"),
    ),
}

TOURS: dict[str, TourOption] = {
    "whale-sharks-qatar": TourOption(
        id="whale-sharks-qatar",
        name="Whale Sharks of Qatar",
        description="Snorkel alongside whale sharks in Qatar's waters with professional guides and refreshments.",
        duration="6 hours",
        price=195,
        highlights=("Swimming with whale sharks", "Marine biologist guide", "Snorkeling equipment included"),
        max_participants=12,
    ),
    "pearl-diving-experience": TourOption(
        id="pearl-diving-experience",
        name="Traditional Pearl Diving Experience",
        description="Dhow boat ride and pearl diving demonstration rooted in Qatar's heritage.",
        duration="4 hours",
        price=145,
        highlights=("Traditional dhow boat", "Pearl diving demonstration", "Souvenir pearl gift"),
        max_participants=16,
    ),
    "doha-city-skyline-tour": TourOption(
        id="doha-city-skyline-tour",
        name="Doha City & Skyline Tour",
        description="Modern architecture, cultural landmarks and skyline views across Doha.",
        duration="5 hours",
        price=125,
        highlights=("Museum of Islamic Art visit", "Corniche waterfront walk", "Traditional market visit"),
        max_participants=20,
    ),
    "desert-safari-adventure": TourOption(
        id="desert-safari-adventure",
        name="Desert Safari Adventure",
        description="Dune bashing, camel riding and a Bedouin camp dinner.",
        duration="7 hours",
        price=175,
        highlights=("Dune bashing in 4WD vehicles", "Camel riding", "Authentic Arabic dinner"),
        max_participants=24,
    ),
}

RECOMMENDED_TOUR_ID = "whale-sharks-qatar"

AIRPORT_TRANSFER = TransferOption(
    id="airport-transfer-return",
    name="Airport Transfers (Return)",
    description="Return transfers between Hamad International Airport and your hotel, with meet & greet.",
    price=60,
)
