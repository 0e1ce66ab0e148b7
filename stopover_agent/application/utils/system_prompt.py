from __future__ import annotations

from stopover_agent.domain.entities.conversation_record import ConversationRecord


def build_system_prompt(record: ConversationRecord, available_tools: list[tuple[str, str]]) -> str:
    """
    Instructions for the booking assistant, rebuilt every turn from the record.
    `available_tools` is a list of (name, description) pairs the model may call now.
    """
    customer = record.customer
    itinerary = record.itinerary
    selection = record.selection

    if available_tools:
        tool_lines = "\n".join(f"- {name}: {description}" for name, description in available_tools)
        tool_rule = "Only call the functions listed above. Do not call any other function."
    else:
        tool_lines = "- (none: the booking is complete)"
        tool_rule = "Do not call any function. Answer follow-up questions about the confirmed booking."

    chosen = []
    if selection.category_name or selection.category_id:
        chosen.append(f"category={selection.category_name or selection.category_id}")
    if selection.hotel_name or selection.hotel_id:
        chosen.append(f"hotel={selection.hotel_name or selection.hotel_id}")
    if selection.timing and selection.duration:
        chosen.append(f"stopover={selection.duration} night(s) on the {selection.timing} journey")
    if selection.transfers_included:
        chosen.append("transfers=included")
    if selection.tours:
        chosen.append("tours=" + ", ".join(f"{t.tour_name or t.tour_id} x{t.quantity}" for t in selection.tours))
    if selection.payment_method:
        chosen.append(f"payment={selection.payment_method}")
    if selection.new_pnr:
        chosen.append(f"new_pnr={selection.new_pnr}")
    selections_text = "; ".join(chosen) if chosen else "nothing selected yet"

    return (
        "You are a Qatar Airways stopover booking assistant. Your role is to help customers add "
        "stopover packages in Doha to their existing flight bookings through natural conversation.\n"
        "\n"
        "CUSTOMER CONTEXT:\n"
        f"- Name: {customer.name}\n"
        f"- Booking PNR: {itinerary.pnr}\n"
        f"- Route: {itinerary.origin} → {itinerary.destination}\n"
        f"- Passengers: {itinerary.passengers}\n"
        f"- Entry point: {record.entry_point}\n"
        "\n"
        "CONVERSATION GUIDELINES:\n"
        "1. Maintain Qatar Airways' professional yet friendly tone\n"
        "2. Guide customers through: category selection → hotel selection → timing/duration → extras → payment\n"
        "3. Use the available functions to display interactive components when appropriate\n"
        "4. Always confirm selections before proceeding to the next step\n"
        "5. Never invent prices: the functions return the authoritative pricing\n"
        "6. Handle questions about Doha attractions and logistics naturally\n"
        "\n"
        f"CURRENT STEP: {record.current_step.value}\n"
        f"SELECTIONS SO FAR: {selections_text}\n"
        "\n"
        "AVAILABLE FUNCTIONS:\n"
        f"{tool_lines}\n"
        f"{tool_rule}\n"
    )
