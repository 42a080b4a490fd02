"""Minimal hello-world demo: two file-backed services sharing one directory."""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path

# Allow running directly from the repo without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from twinqueue.core.twinqueue import TwinQueue  # noqa: E402


def main() -> None:
    with tempfile.TemporaryDirectory() as home:
        config = {
            "twinqueue": {"backend": "file", "home_directory": home},
            "queues": {"greetings": {"visibility_timeout": 30_000}},
        }
        producer = TwinQueue.create(config=config)
        consumer = TwinQueue.create(config=config)

        for name in ("Alice", "Bob"):
            producer.push("greetings", f"hello, {name}")

        while (message := consumer.pull("greetings")) is not None:
            print(f"received {message.text!r} (receipt {message.receipt_token})")
            consumer.delete("greetings", message)


if __name__ == "__main__":
    main()
