"""Voice-guided announcements for turn-by-turn navigation."""

from dataclasses import replace
from typing import Callable, Optional, Sequence

from .audio import CANCELLED, SpeechEngine, Utterance, Voice
from .config import CONFIG
from .loop import Scheduler, TimerHandle
from .models import SpeechError, VoiceState

ROUTE_START_TEMPLATE = "Маршрут построен. Расстояние: {distance}. Время в пути: примерно {duration}."
ARRIVAL_TEMPLATE = "Вы прибыли к месту назначения: {name}"
UNSUPPORTED_MESSAGE = "Голосовая навигация не поддерживается на этом устройстве"
UTTERANCE_ERROR_TEMPLATE = "Ошибка голосовой навигации: {reason}"


def _normalize_tag(tag: str) -> str:
    return tag.strip().lower().replace("_", "-")


class VoiceAnnouncer:
    """
    Speaks instruction text one utterance at a time.

    Announcements are opt-in: nothing is spoken until enable() is called,
    and speak calls made while disabled are dropped, not deferred. Only the
    utterance currently in flight may change state; callbacks arriving from
    a superseded utterance are ignored.
    """

    def __init__(self, engine: Optional[SpeechEngine], scheduler: Scheduler,
                 language: Optional[str] = None, rate: Optional[float] = None,
                 pitch: Optional[float] = None, volume: Optional[float] = None,
                 step_pause: Optional[float] = None,
                 on_error: Optional[Callable[[SpeechError], None]] = None):
        self.engine = engine
        self.scheduler = scheduler
        self.language = language or CONFIG["speech_language"]
        self.rate = rate if rate is not None else CONFIG["speech_rate"]
        self.pitch = pitch if pitch is not None else CONFIG["speech_pitch"]
        self.volume = volume if volume is not None else CONFIG["speech_volume"]
        self.step_pause = step_pause if step_pause is not None else CONFIG["step_pause"]
        self.on_error = on_error

        self._state = VoiceState()
        self._utterance: Optional[Utterance] = None
        self._queue: list[str] = []
        self._queue_index = 0
        self._pause_timer: Optional[TimerHandle] = None

        if engine is None:
            self._state.is_supported = False
            self._state.error = UNSUPPORTED_MESSAGE

    @property
    def state(self) -> VoiceState:
        return replace(self._state)

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    def enable(self):
        if self.engine is None:
            return
        self._state.is_enabled = True
        self._state.error = None

    def disable(self):
        self.stop()
        self._state.is_enabled = False

    def toggle(self):
        if self._state.is_enabled:
            self.disable()
        else:
            self.enable()

    def _can_speak(self) -> bool:
        return self.engine is not None and self._state.is_enabled

    # ------------------------------------------------------------------
    # Speaking
    # ------------------------------------------------------------------

    def select_voice(self) -> Optional[Voice]:
        """Voice matching the configured language, or None for the engine default"""
        tag = _normalize_tag(self.language)
        primary = tag.split("-")[0]
        voices = self.engine.list_voices() if self.engine else []
        for voice in voices:
            if _normalize_tag(voice.language) == tag:
                return voice
        for voice in voices:
            if _normalize_tag(voice.language).split("-")[0] == primary:
                return voice
        return None

    def _create_utterance(self, text: str) -> Utterance:
        return Utterance(
            text=text,
            language=self.language,
            rate=self.rate,
            pitch=self.pitch,
            volume=self.volume,
            voice=self.select_voice(),
        )

    def speak_step(self, text: str, step_index: Optional[int] = None):
        if not self._can_speak():
            return

        self._cancel_queue()
        self.engine.cancel()

        utterance = self._create_utterance(text)

        def started():
            if self._utterance is utterance:
                self._state.is_speaking = True
                self._state.error = None
                if step_index is not None:
                    self._state.current_step_index = step_index

        def ended():
            if self._utterance is utterance:
                self._utterance = None
                self._state.is_speaking = False

        def failed(reason: str):
            if self._utterance is utterance:
                self._utterance = None
                self._state.is_speaking = False
                if reason != CANCELLED:
                    self._set_error(UTTERANCE_ERROR_TEMPLATE.format(reason=reason))

        utterance.on_start, utterance.on_end, utterance.on_error = started, ended, failed
        self._utterance = utterance
        self.engine.speak(utterance)

    def speak_all_steps(self, texts: Sequence[str]):
        """Speak every text in order with a pause between them"""
        if not self._can_speak() or not texts:
            return

        self._cancel_queue()
        self._utterance = None
        self.engine.cancel()

        self._queue = list(texts)
        self._queue_index = 0
        self._speak_next(self._queue)

    def _speak_next(self, queue: list[str]):
        self._pause_timer = None
        if queue is not self._queue:
            return

        if self._queue_index >= len(queue):
            self._queue = []
            self._queue_index = 0
            self._state.is_speaking = False
            self._state.current_step_index = -1
            return

        index = self._queue_index
        utterance = self._create_utterance(queue[index])

        def started():
            if self._utterance is utterance:
                self._state.is_speaking = True
                self._state.error = None
                self._state.current_step_index = index

        def ended():
            if self._utterance is utterance:
                self._utterance = None
                self._queue_index += 1
                self._pause_timer = self.scheduler.call_later(
                    self.step_pause, self._speak_next, queue)

        def failed(reason: str):
            if self._utterance is utterance:
                self._utterance = None
                self._state.is_speaking = False
                if reason != CANCELLED:
                    self._set_error(UTTERANCE_ERROR_TEMPLATE.format(reason=reason))

        utterance.on_start, utterance.on_end, utterance.on_error = started, ended, failed
        self._utterance = utterance
        self.engine.speak(utterance)

    def _cancel_queue(self):
        if self._pause_timer is not None:
            self._pause_timer.cancel()
            self._pause_timer = None
        self._queue = []
        self._queue_index = 0

    def stop(self):
        if self.engine is None:
            return
        self._cancel_queue()
        self._utterance = None
        self.engine.cancel()
        self._state.is_speaking = False
        self._state.current_step_index = -1

    def close(self):
        self.stop()

    # ------------------------------------------------------------------
    # Announcements
    # ------------------------------------------------------------------

    def announce_route_start(self, distance: str, duration: str):
        if not self._can_speak():
            return
        self.speak_step(ROUTE_START_TEMPLATE.format(distance=distance, duration=duration))

    def announce_arrival(self, destination_name: str):
        if not self._can_speak():
            return
        self.speak_step(ARRIVAL_TEMPLATE.format(name=destination_name))

    def _set_error(self, message: str):
        self._state.error = message
        if self.on_error:
            self.on_error(SpeechError(message=message))
