"""Text-to-speech capability: port and engine adapters."""

import queue
import shutil
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import pyttsx3

from .config import CONFIG
from .loop import Scheduler

# Error reason reported for utterances we cancelled ourselves
CANCELLED = "cancelled"


@dataclass(frozen=True)
class Voice:
    name: str
    language: str  # BCP 47 style tag, e.g. "ru" or "ru-RU"
    id: str = ""


@dataclass
class Utterance:
    text: str
    language: str = "ru-RU"
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    voice: Optional[Voice] = None
    on_start: Optional[Callable[[], None]] = None
    on_end: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[str], None]] = None


class SpeechEngine(ABC):
    """Platform speech capability. Callbacks are delivered on the application loop."""

    @abstractmethod
    def speak(self, utterance: Utterance) -> None:
        """Queue an utterance behind any already queued"""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the current utterance and drop queued ones, each reporting CANCELLED"""

    @abstractmethod
    def list_voices(self) -> list[Voice]: ...

    def close(self) -> None:
        """Release engine resources"""


class _WorkerEngine(SpeechEngine):
    """Serializes utterances on one worker thread.

    Every cancel() bumps the epoch; an utterance queued or playing under an
    older epoch finishes with CANCELLED.
    """

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self._queue: "queue.Queue[Optional[tuple[Utterance, int]]]" = queue.Queue()
        self._lock = threading.Lock()
        self._epoch = 0
        self._thread = threading.Thread(target=self._worker, daemon=True)

    def _emit(self, callback: Optional[Callable], *args):
        if callback:
            self.scheduler.call_soon(callback, *args)

    def _is_current(self, epoch: int) -> bool:
        with self._lock:
            return epoch == self._epoch

    def speak(self, utterance):
        with self._lock:
            epoch = self._epoch
        self._queue.put((utterance, epoch))

    def cancel(self):
        with self._lock:
            self._epoch += 1
        self._interrupt()

    def close(self):
        self.cancel()
        self._queue.put(None)

    def _worker(self):
        while True:
            item = self._queue.get()
            if item is None:
                break
            utterance, epoch = item
            if not self._is_current(epoch):
                self._emit(utterance.on_error, CANCELLED)
                continue
            self._play(utterance, epoch)

    @abstractmethod
    def _play(self, utterance: Utterance, epoch: int) -> None: ...

    @abstractmethod
    def _interrupt(self) -> None: ...


class EspeakEngine(_WorkerEngine):
    """Speech via the espeak binary"""

    def __init__(self, scheduler: Scheduler, executable: str = "espeak"):
        super().__init__(scheduler)
        self.executable = executable
        self.base_wpm = CONFIG["espeak_base_wpm"]
        self._process: Optional[subprocess.Popen] = None
        self._voices: Optional[list[Voice]] = None
        self._thread.start()

    @staticmethod
    def is_available(executable: str = "espeak") -> bool:
        return shutil.which(executable) is not None

    def _command(self, utterance: Utterance) -> list[str]:
        voice = utterance.voice.name if utterance.voice else utterance.language.split("-")[0].lower()
        return [
            self.executable,
            "-v", voice,
            "-s", str(int(self.base_wpm * utterance.rate)),
            "-p", str(max(0, min(99, int(50 * utterance.pitch)))),
            "-a", str(max(0, min(200, int(100 * utterance.volume)))),
            utterance.text,
        ]

    def _play(self, utterance, epoch):
        # Callbacks may call cancel(), so none are emitted while holding the lock
        process, failure = None, CANCELLED
        with self._lock:
            if epoch == self._epoch:
                try:
                    process = subprocess.Popen(
                        self._command(utterance),
                        stdout=subprocess.DEVNULL,
                        stderr=subprocess.PIPE,
                        text=True
                    )
                except OSError as e:
                    failure = str(e)
                self._process = process
        if process is None:
            self._emit(utterance.on_error, failure)
            return

        self._emit(utterance.on_start)
        _, stderr = process.communicate()

        with self._lock:
            self._process = None
            cancelled = epoch != self._epoch
        if cancelled:
            self._emit(utterance.on_error, CANCELLED)
        elif process.returncode != 0:
            self._emit(utterance.on_error,
                       (stderr or "").strip() or f"espeak exited with {process.returncode}")
        else:
            self._emit(utterance.on_end)

    def _interrupt(self):
        with self._lock:
            process = self._process
        if process and process.poll() is None:
            process.terminate()

    def list_voices(self):
        if self._voices is None:
            self._voices = []
            try:
                result = subprocess.run(
                    [self.executable, "--voices"], capture_output=True, text=True, timeout=10)
            except (OSError, subprocess.TimeoutExpired):
                return self._voices
            # Pty Language Age/Gender VoiceName File Other Languages
            for line in result.stdout.splitlines()[1:]:
                parts = line.split()
                if len(parts) >= 5:
                    self._voices.append(Voice(name=parts[3], language=parts[1], id=parts[4]))
        return self._voices


def _voice_language(voice) -> str:
    """Language tag of a pyttsx3 voice"""
    for lang in getattr(voice, "languages", None) or []:
        if isinstance(lang, bytes):
            # espeak driver prefixes the tag with a priority byte
            lang = lang[1:].decode("utf-8", errors="ignore")
        lang = str(lang).strip().replace("_", "-")
        if lang:
            return lang
    return ""


class Pyttsx3Engine(_WorkerEngine):
    """Speech via pyttsx3. The engine lives on the worker thread."""

    def __init__(self, scheduler: Scheduler, init_timeout: float = 10.0):
        super().__init__(scheduler)
        self._engine = None
        self._voices: list[Voice] = []
        self._running = False
        self._playing_epoch = -1
        self._init_error: Optional[Exception] = None
        self._ready = threading.Event()
        self._thread.start()
        self._ready.wait(init_timeout)
        if self._init_error is not None:
            raise RuntimeError(f"pyttsx3 unavailable: {self._init_error}")

    def _worker(self):
        try:
            engine = pyttsx3.init()
            self._voices = [
                Voice(name=v.name, language=_voice_language(v), id=v.id)
                for v in engine.getProperty("voices") or []
            ]
        except (RuntimeError, OSError, ImportError) as e:
            self._init_error = e
            self._ready.set()
            return
        engine.connect("started-utterance", self._on_started)
        self._engine = engine
        self._ready.set()
        super()._worker()

    def _play(self, utterance, epoch):
        engine = self._engine
        engine.setProperty("rate", int(200 * utterance.rate))
        engine.setProperty("volume", max(0.0, min(1.0, utterance.volume)))
        if utterance.voice:
            engine.setProperty("voice", utterance.voice.id)

        # stop() is a no-op until runAndWait() is running, so a cancel that
        # lands from here on is caught either below or in _on_started
        with self._lock:
            stale = epoch != self._epoch
            if not stale:
                self._running = True
                self._playing_epoch = epoch
        if stale:
            self._emit(utterance.on_error, CANCELLED)
            return

        self._emit(utterance.on_start)
        try:
            engine.say(utterance.text)
            engine.runAndWait()
        except RuntimeError as e:
            self._emit(utterance.on_error, str(e))
            return
        finally:
            with self._lock:
                self._running = False

        if self._is_current(epoch):
            self._emit(utterance.on_end)
        else:
            self._emit(utterance.on_error, CANCELLED)

    def _on_started(self, name):
        if not self._is_current(self._playing_epoch):
            self._engine.stop()

    def _interrupt(self):
        with self._lock:
            running = self._running
        if running and self._engine is not None:
            self._engine.stop()

    def list_voices(self):
        return list(self._voices)


def create_speech_engine(scheduler: Scheduler) -> Optional[SpeechEngine]:
    """espeak if installed, else pyttsx3, else None (unsupported)"""
    if EspeakEngine.is_available():
        return EspeakEngine(scheduler)
    try:
        return Pyttsx3Engine(scheduler)
    except RuntimeError as e:
        print(f"Audio unavailable: {e}")
        return None
