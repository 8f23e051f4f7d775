"""
GhostText Demo - Interactive Inline Completion
==============================================
This demo drives a completion session the way an editor would:
- Checks the local inference server and lists installed models
- Builds a document from a file and a cursor marker
- Requests ghost text, then "types" part of it to show the sticky cache
"""

from __future__ import annotations

import asyncio
import sys

import halo
from ghosttext import RECOMMENDED_MODELS
from ghosttext import CompletionSession
from ghosttext import InferenceError
from ghosttext import TextDocument
from ghosttext import load_config
from ghosttext.types.completion import Position

# ============================================================================
# Configuration
# ============================================================================

CURSOR = "|"

SAMPLE = """\
def fibonacci(n: int) -> int:
    \"\"\"Return the n-th Fibonacci number.\"\"\"
    if n < 2:
        return n
    |

print(fibonacci(10))
"""


def load_document() -> tuple[TextDocument, Position]:
    """Read the document from argv[1] (with a '|' cursor marker) or use the
    built-in sample."""
    if len(sys.argv) > 1:
        with open(sys.argv[1], encoding="utf-8") as f:
            return TextDocument.with_cursor(f.read(), CURSOR)
    return TextDocument.with_cursor(SAMPLE, CURSOR)


def type_ahead(doc: TextDocument, cursor: Position, typed: str) -> tuple[TextDocument, Position]:
    """Insert ``typed`` at ``cursor`` and return the new document and cursor."""
    lines = doc.text.split("\n")
    line = lines[cursor.line - 1]
    lines[cursor.line - 1] = line[:cursor.column - 1] + typed + line[cursor.column - 1:]
    text = "\n".join(lines)
    offset = len(doc.text_in_range(Position(1, 1), cursor)) + len(typed)
    new_doc = TextDocument(text)
    return new_doc, new_doc.position_at(offset)


# ============================================================================
# Interactive Session
# ============================================================================


async def run():
    """Main demo flow."""
    config = load_config()
    spinner = halo.Halo(text="Thinking", spinner="dots")

    print("\n" + "=" * 60)
    print("👻 Welcome to the GhostText Demo!")
    print("=" * 60)
    print(f"Endpoint: {config.endpoint}")
    print(f"Model:    {config.model}")

    async with CompletionSession(config) as session:
        if not await session.client.check_health():
            print(f"\n❌ No inference server at {config.endpoint}. Is Ollama running?\n")
            return

        installed = await session.client.list_models()
        print(f"Installed models: {', '.join(installed) or '(none)'}")
        if config.model not in installed:
            print("\nRecommended models:")
            for model in RECOMMENDED_MODELS:
                print(f"  • {model.id:<22} {model.vram:>7}  {model.description}")
        print("=" * 60 + "\n")

        doc, cursor = load_document()
        spinner.start()
        try:
            result = await session.request_completion(doc, cursor)
        except InferenceError as e:
            spinner.stop()
            print(f"❌ {e}\n")
            return
        spinner.stop()

        if not result:
            print("🤷 No suggestion.\n")
            return

        print("💡 Suggestion:")
        print(result.insert_text)
        print()

        # Accept the first few characters; the rest comes from the cache.
        typed = result.insert_text[:max(1, len(result.insert_text) // 3)]
        doc, cursor = type_ahead(doc, cursor, typed)
        follow_up = await session.request_completion(doc, cursor)
        source = "cache ⚡" if follow_up.from_cache else "server 🌐"
        print(f"⌨️  After typing {typed!r} ({source}):")
        print(follow_up.insert_text or "(no suggestion)")
        print()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    asyncio.run(run())
