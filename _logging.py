# _logging.py
# ShareWatch - structured logger: colored console lines plus an optional JSON-lines file.
from __future__ import annotations
import sys, datetime, json, threading, time
from typing import Any, Optional, TextIO, Mapping, Dict

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

LABEL_COLORS = {
    "DEBUG": YELLOW,
    "INFO": BLUE,
    "WARN": YELLOW,
    "ERROR": RED,
    "SUCCESS": GREEN,
}

# runtime.debug gate (reads config.json, cached briefly)
_CFG_CACHE: Dict[str, Any] | None = None
_CFG_TS: float = 0.0

def _runtime_block() -> Dict[str, Any]:
    global _CFG_CACHE, _CFG_TS
    now = time.time()
    if _CFG_CACHE is None or (now - _CFG_TS) > 5.0:
        try:
            from sw_platform.config_base import config_path
            with open(config_path(), "r", encoding="utf-8") as f:
                _CFG_CACHE = json.load(f)
        except (OSError, ValueError):
            _CFG_CACHE = {}
        _CFG_TS = now
    rt = (_CFG_CACHE or {}).get("runtime") or {}
    return rt if isinstance(rt, dict) else {}

def _debug_enabled() -> bool:
    return bool(_runtime_block().get("debug"))


class _Sinks:
    """Output state shared by a root logger and every logger bound from it."""

    def __init__(self, stream: TextIO, level: str, use_color: bool, show_time: bool, time_fmt: str):
        self.stream = stream
        self.level_no = LEVELS.get(level, 20)
        self.use_color = use_color and bool(getattr(stream, "isatty", lambda: False)())
        self.show_time = show_time
        self.time_fmt = time_fmt
        self.json_stream: Optional[TextIO] = None
        self.lock = threading.Lock()


class Logger:
    def __init__(
        self,
        stream: TextIO = sys.stdout,
        level: str = "info",
        use_color: bool = True,
        show_time: bool = True,
        time_fmt: str = "%Y-%m-%d %H:%M:%S",
        *,
        _sinks: Optional[_Sinks] = None,
        _context: Optional[Dict[str, Any]] = None,
    ):
        self._sinks = _sinks or _Sinks(stream, level, use_color, show_time, time_fmt)
        self._context: Dict[str, Any] = dict(_context or {})

    # Configuration (applies to every bound child)
    def set_level(self, level: str) -> None:
        self._sinks.level_no = LEVELS.get(level, self._sinks.level_no)

    @property
    def level_name(self) -> str:
        return next((k for k, v in LEVELS.items() if v == self._sinks.level_no), "info")

    def enable_json(self, file_path: str) -> None:
        with self._sinks.lock:
            if self._sinks.json_stream is None:
                self._sinks.json_stream = open(file_path, "a", encoding="utf-8")

    def configure(self, cfg: Mapping[str, Any]) -> None:
        """Apply runtime.log_level / runtime.log_json from a loaded config."""
        rt = cfg.get("runtime") or {}
        if rt.get("log_level"):
            self.set_level(str(rt["log_level"]).lower())
        if rt.get("log_json"):
            self.enable_json(str(rt["log_json"]))

    # Context
    def bind(self, **ctx: Any) -> "Logger":
        return Logger(_sinks=self._sinks, _context={**self._context, **ctx})

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    # Formatting
    def _line(self, label: str, msg: str) -> str:
        s = self._sinks
        col = LABEL_COLORS.get(label) if s.use_color else None
        mod = str(self._context.get("module") or "").strip()
        line = f"{f'[{mod}]' if mod else ''} {f'{col}{label}{RESET}' if col else label} {msg}".strip()
        if not s.show_time:
            return line
        ts = datetime.datetime.now().strftime(s.time_fmt)
        return f"{DIM}[{ts}]{RESET} {line}" if s.use_color else f"[{ts}] {line}"

    def _emit(self, severity: str, label: str, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        s = self._sinks
        below = s.level_no > LEVELS[severity]
        if below and not (severity == "debug" and _debug_enabled()):
            return
        msg = " ".join(str(p) for p in parts)
        text = self._line(label, msg)
        with s.lock:
            s.stream.write(text + "\n")
            s.stream.flush()
            if s.json_stream is not None:
                rec: Dict[str, Any] = {
                    "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds"),
                    "level": label,
                    "msg": msg,
                    "ctx": self._context,
                }
                if extra:
                    rec["extra"] = dict(extra)
                s.json_stream.write(json.dumps(rec, ensure_ascii=False, default=str) + "\n")
                s.json_stream.flush()

    # Public API
    def debug(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("debug", "DEBUG", *parts, extra=extra)

    def info(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "INFO", *parts, extra=extra)

    def warn(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("warn", "WARN", *parts, extra=extra)

    warning = warn

    def error(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("error", "ERROR", *parts, extra=extra)

    def success(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "SUCCESS", *parts, extra=extra)

    # log("text", level="WARN", module="IMPORT")
    def __call__(
        self,
        message: str,
        *,
        level: str = "INFO",
        module: Optional[str] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        target = self.bind(module=module) if module else self
        fn = {
            "debug": target.debug,
            "warn": target.warn,
            "warning": target.warn,
            "error": target.error,
            "success": target.success,
        }.get((level or "INFO").lower(), target.info)
        fn(message, extra=extra)

# default instance
log = Logger()

__all__ = ["Logger", "log", "LEVELS"]
