"""Desktop entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any

from PySide6 import QtAsyncio
from PySide6.QtWidgets import QApplication

from formsign.backend.client import BackendClient
from formsign.config import settings
from formsign.model.form import Form, LifecycleTag
from formsign.pdf.engine import PdfEngine
from formsign.state.errors import SessionError
from formsign.state.session import FormSession
from formsign.state.signatures import SignatureScope
from formsign.ui.confirm import ask_confirmation
from formsign.ui.main_window import MainWindow

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fill and sign PDF forms.")
    parser.add_argument("pdf", nargs="?", help="Local PDF to open in the own-party view.")
    parser.add_argument("--token", default=settings.backend_token, help="Response token of a counterparty session.")
    parser.add_argument("--prefill", type=Path, help="JSON object of field name -> value.")
    return parser.parse_args(argv)


def _prefill_provider(path: Path | None):
    async def provide(form: Form) -> dict[str, Any]:
        del form
        if path is None:
            return {}
        data = json.loads(await asyncio.to_thread(path.read_text, encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Prefill file must contain a JSON object: {path}")
        return data

    return provide


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=settings.log_level)

    app = QApplication(sys.argv[:1])
    scope = SignatureScope.COUNTERPARTY_FIELDS if args.token else SignatureScope(settings.signature_scope)
    window: MainWindow | None = None

    async def confirm(message: str) -> bool:
        return await ask_confirmation(window, message)

    def on_error(error: SessionError) -> None:
        if window is not None:
            window.show_error(error)

    session = FormSession(
        PdfEngine(timeout=settings.request_timeout),
        BackendClient(),
        confirm,
        scope=scope,
        token=args.token,
        prefill=_prefill_provider(args.prefill),
        on_error=on_error,
    )
    window = MainWindow(session)
    window.show()

    async def start() -> None:
        if args.token:
            await session.bootstrap(args.token)
        elif args.pdf:
            await session.load(
                Form(id=Path(args.pdf).stem, tag=LifecycleTag.MASTER.value, source_url=args.pdf)
            )

    logger.info("Starting %s view", scope.value)
    QtAsyncio.run(start(), handle_sigint=True)
    app.quit()


if __name__ == "__main__":
    main()
