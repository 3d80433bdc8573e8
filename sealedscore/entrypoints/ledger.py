"""Development ledger entrypoint.

Serves an InMemoryRecordLedger over HTTP so the client can be run end to
end without the real record contract. Input and decryption proofs are
accepted when signed by the configured relayer hotkey.
"""

import argparse
import asyncio
import os
import signal
import sys

import bittensor as bt
from dotenv import load_dotenv

from sealedscore.base.config import add_ledger_server_args, load_settings
from sealedscore.records.ledger import AccessPolicy, InMemoryRecordLedger, KeypairProofChecker
from sealedscore.records.ledger.http_server import LedgerHTTPServer


def main() -> None:
    if os.environ.get("SEALEDSCORE_TEST_MODE") != "true":
        load_dotenv()

    parser = argparse.ArgumentParser(description="Sealedscore development ledger")
    bt.logging.add_args(parser)
    add_ledger_server_args(parser)
    args = parser.parse_args()

    settings = load_settings(args).ledger_server
    if not settings.relayer_hotkey:
        bt.logging.error("SEALEDSCORE_LEDGER_SERVER__RELAYER_HOTKEY is required")
        sys.exit(1)
    if not settings.context_address:
        bt.logging.error("SEALEDSCORE_LEDGER_SERVER__CONTEXT_ADDRESS is required")
        sys.exit(1)

    ledger = InMemoryRecordLedger(
        checker=KeypairProofChecker(settings.relayer_hotkey, settings.context_address),
        state_path=settings.state_path or None,
    )
    server = LedgerHTTPServer(
        ledger=ledger,
        access_policy=AccessPolicy(),
        host=settings.host,
        port=settings.port,
    )

    bt.logging.info({
        "ledger_config": {
            "host": settings.host,
            "port": settings.port,
            "state_path": settings.state_path or None,
            "relayer_hotkey": settings.relayer_hotkey,
        }
    })

    loop = asyncio.new_event_loop()
    stop = asyncio.Event()

    def _signal_handler(sig, frame):
        bt.logging.info({"ledger": "shutdown_signal_received"})
        loop.call_soon_threadsafe(stop.set)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    async def _serve() -> None:
        await server.start()
        await stop.wait()

    try:
        loop.run_until_complete(_serve())
    except KeyboardInterrupt:
        bt.logging.info({"ledger": "keyboard_interrupt"})
    finally:
        loop.run_until_complete(server.stop())
        loop.close()
        bt.logging.info({"ledger": "stopped"})


if __name__ == "__main__":
    main()
