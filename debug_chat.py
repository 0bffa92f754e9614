"""
Console chat against the delivery conversation engine.
Run with: python debug_chat.py
"""
import asyncio
import sys
import uuid
from pathlib import Path

# Add backend to path
backend_path = Path(__file__).parent / "backend"
sys.path.append(str(backend_path))

from main import init_database
from app.orchestration.delivery.machine import get_conversation_engine
from app.orchestration.delivery.states.base import format_options


async def chat() -> None:
    init_database()
    engine = get_conversation_engine()
    session_id = f"console-{uuid.uuid4()}"

    print("\nVirtual Delivery Assistant")
    print("Type 'exit' or 'quit' to end the conversation\n")

    while True:
        user_input = await asyncio.to_thread(input, "You: ")
        if user_input.strip().lower() in ("exit", "quit"):
            print("\nAssistant: Thank you! Have a great day!")
            break

        reply = await engine.process_message(session_id, user_input)
        print(f"\nAssistant: {reply.response}")

        if reply.order_details:
            print(reply.order_details)
        if reply.reschedule_options:
            print("\nAvailable delivery slots:")
            print(format_options(reply.reschedule_options))
            print(f"\nPlease enter the number of your preferred slot (1-{len(reply.reschedule_options)})")
        if reply.whatsapp_sent:
            print("\nAssistant: A confirmation has been sent to your WhatsApp.")
        print()

        if reply.end_conversation:
            break

    await engine.dispatcher.drain()


if __name__ == "__main__":
    try:
        asyncio.run(chat())
    except (KeyboardInterrupt, EOFError):
        print()
