import codecs
import json
import logging
import sys
from datetime import datetime, timezone

from rich.console import Console
from rich.logging import RichHandler


class StructuredLogger:
    """Logger that supports both human-readable and JSON output with secret redaction."""

    def __init__(self, structured: bool = False, level: str = "INFO"):
        self._secrets = set()

        # Fix Windows Unicode handling
        if sys.platform == "win32" and sys.stdout.encoding.lower() != "utf-8":
            try:
                sys.stdout.reconfigure(encoding="utf-8")
            except AttributeError:
                sys.stdout = codecs.getwriter("utf-8")(sys.stdout.detach())

        self.logger = logging.getLogger("graphsql")
        self.configure(structured=structured, level=level)

    def configure(self, structured: bool = False, level: str = "INFO"):
        """Switch output mode and level without replacing the instance."""
        self.structured = structured
        self.level = getattr(logging, level.upper(), logging.INFO)

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)

        if not self.structured:
            handler = RichHandler(
                rich_tracebacks=True,
                markup=False,
                show_path=False,
                console=(
                    Console(force_terminal=True, legacy_windows=False)
                    if sys.platform == "win32"
                    else None
                ),
            )
            handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
            self.logger.addHandler(handler)
            self.logger.propagate = False
        else:
            # JSON lines go straight to stdout, the stdlib logger stays quiet
            self.logger.propagate = True

        self.logger.setLevel(self.level)

    def register_secret(self, secret: str):
        """Register a secret string to be redacted from logs."""
        if secret and isinstance(secret, str) and len(secret.strip()) > 0:
            self._secrets.add(secret)

    def _redact(self, text: str) -> str:
        """Redact registered secrets from text."""
        if not text or not self._secrets:
            return text

        for secret in self._secrets:
            if secret in text:
                text = text.replace(secret, "[REDACTED]")
        return text

    def info(self, message: str, **kwargs):
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log("DEBUG", message, **kwargs)

    def _log(self, level: str, message: str, **kwargs):
        level_val = getattr(logging, level, logging.INFO)
        if level_val < self.level:
            return

        message = self._redact(str(message))

        redacted_kwargs = {}
        for k, v in kwargs.items():
            if isinstance(v, str):
                redacted_kwargs[k] = self._redact(v)
            else:
                redacted_kwargs[k] = v

        if self.structured:
            log_entry = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "level": level,
                "message": message,
                **redacted_kwargs,
            }
            print(json.dumps(log_entry, default=str))
        else:
            context_str = ""
            if redacted_kwargs:
                context_items = [f"{k}={v}" for k, v in redacted_kwargs.items()]
                context_str = f" ({', '.join(context_items)})"

            formatted_msg = f"{message}{context_str}"

            if level == "INFO":
                self.logger.info(formatted_msg)
            elif level == "WARNING":
                self.logger.warning(f"[WARN] {formatted_msg}")
            elif level == "ERROR":
                self.logger.error(f"[ERROR] {formatted_msg}")
            elif level == "DEBUG":
                self.logger.debug(f"[DEBUG] {formatted_msg}")


# Shared instance, reconfigured in place by configure_logging
logger = StructuredLogger()


def configure_logging(structured: bool, level: str):
    """Configure the shared logger."""
    logger.configure(structured=structured, level=level)
