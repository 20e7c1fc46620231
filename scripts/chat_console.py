"""Terminal front end for aperonix.

Subscribes to store and send-status events and prints the conversation.
Commands: /new, /list, /open N, /rename TITLE, /dup, /delete, /html, /quit
"""

import asyncio
import sys

from aperonix import Aperonix
from aperonix.services.conversation_store import StoreEvent, StoreEventKind
from aperonix.services.session_controller import SendState, SendStatusEvent

HELP = "Commands: /new /list /open N /rename TITLE /dup /delete /html /quit"


def on_store_event(event: StoreEvent) -> None:
    if event.kind in (StoreEventKind.CREATED, StoreEventKind.SELECTED, StoreEventKind.DUPLICATED):
        print(f"[chat {event.active_chat_id}]")


def on_status(event: SendStatusEvent) -> None:
    if event.state == SendState.SENDING:
        print("… thinking")


async def read_line(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def main() -> None:
    show_html = False

    async with Aperonix() as ax:
        ax.store.subscribe(on_store_event)
        ax.controller.subscribe(on_status)

        chat = ax.get_chat()
        print(f"Aperonix - {chat.title} ({chat.message_count} messages)")
        print(HELP)

        while True:
            try:
                line = (await read_line("> ")).strip()
            except (EOFError, KeyboardInterrupt):
                break

            if not line:
                continue

            if line == "/quit":
                break
            elif line == "/help":
                print(HELP)
            elif line == "/new":
                await ax.new_chat()
            elif line == "/list":
                active = ax.store.active_chat_id
                for i, c in enumerate(ax.list_chats()):
                    marker = "*" if c.id == active else " "
                    print(f"{marker} {i}: {c.title} ({c.message_count})")
            elif line.startswith("/open "):
                chats = ax.list_chats()
                try:
                    await ax.select_chat(chats[int(line.split()[1])].id)
                except (ValueError, IndexError):
                    print("No such chat")
            elif line.startswith("/rename "):
                await ax.rename_chat(ax.store.active_chat_id, line.removeprefix("/rename "))
            elif line == "/dup":
                await ax.duplicate_chat(ax.store.active_chat_id)
            elif line == "/delete":
                await ax.delete_chat(ax.store.active_chat_id)
            elif line == "/html":
                show_html = not show_html
                print(f"HTML output {'on' if show_html else 'off'}")
            else:
                reply = await ax.send_message(line)
                if reply is None:
                    continue
                if reply.error is not None:
                    print(f"! {reply.error}", file=sys.stderr)
                elif show_html:
                    print(ax.render_message(reply))
                else:
                    print(reply.content)


if __name__ == "__main__":
    asyncio.run(main())
