"""
Audible alert for critical notifications.

Best-effort only: nothing in here may raise past SoundTrigger, so a missing
audio device never blocks notification delivery.
"""
import array
import asyncio
import io
import math
import shutil
import subprocess
import wave
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set

from daroui_notify.constants.notification_types import should_play_sound
from daroui_notify.core.config import settings
from daroui_notify.core.errors import AudioUnavailableError
from daroui_notify.core.logging import sound_logger
from daroui_notify.models.enums import Priority

# Takes a complete WAV file as bytes
Player = Callable[[bytes], None]

TONE_SAMPLE_RATE = 22050
TONE_START_GAIN = 0.3
TONE_END_GAIN = 0.01


def synthesize_tone(
    frequency: float = 800.0,
    duration: float = 0.3,
    start_gain: float = TONE_START_GAIN,
    end_gain: float = TONE_END_GAIN,
    sample_rate: int = TONE_SAMPLE_RATE,
) -> bytes:
    """
    Render a sine beep as 16-bit mono WAV bytes.

    Gain decays exponentially from `start_gain` to `end_gain` over the tone,
    which avoids the click of a hard stop.
    """
    frames = max(1, int(sample_rate * duration))
    decay = math.log(end_gain / start_gain) / frames
    samples = array.array("h")
    for n in range(frames):
        gain = start_gain * math.exp(decay * n)
        value = gain * math.sin(2 * math.pi * frequency * n / sample_rate)
        samples.append(int(value * 32767))

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(samples.tobytes())
    return buffer.getvalue()


def scale_volume(wav_bytes: bytes, volume: float) -> bytes:
    """Attenuate a 16-bit PCM WAV; other sample widths pass through unchanged."""
    if volume >= 1.0:
        return wav_bytes
    with wave.open(io.BytesIO(wav_bytes), "rb") as source:
        params = source.getparams()
        frames = source.readframes(source.getnframes())
    if params.sampwidth != 2:
        return wav_bytes

    samples = array.array("h")
    samples.frombytes(frames)
    for i, value in enumerate(samples):
        samples[i] = int(value * volume)

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setparams(params)
        wav.writeframes(samples.tobytes())
    return buffer.getvalue()


class CommandPlayer:
    """
    Plays WAV bytes by piping them into the first available system player.

    `aplay` (ALSA) and `paplay` (PulseAudio) both read a WAV from stdin at
    playback speed, so on a running event loop the write and the reap happen
    in a worker thread. Without a loop the call plays synchronously.
    """

    CANDIDATES: Sequence[Sequence[str]] = (
        ("aplay", "-q", "-"),
        ("paplay",),
    )

    def __init__(self, candidates: Optional[Sequence[Sequence[str]]] = None):
        self._command = self._find(candidates or self.CANDIDATES)
        self._feeds: Set[asyncio.Task] = set()

    @staticmethod
    def _find(candidates: Sequence[Sequence[str]]) -> Optional[List[str]]:
        for candidate in candidates:
            executable = shutil.which(candidate[0])
            if executable:
                return [executable, *candidate[1:]]
        return None

    @property
    def available(self) -> bool:
        return self._command is not None

    def __call__(self, wav_bytes: bytes) -> None:
        if self._command is None:
            raise AudioUnavailableError("no audio player found (tried aplay, paplay)")
        process = subprocess.Popen(
            self._command,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._feed(process, wav_bytes)
            return

        # Keep the pipe write off the event loop
        task = loop.create_task(asyncio.to_thread(self._feed, process, wav_bytes))
        self._feeds.add(task)
        task.add_done_callback(self._feeds.discard)

    @staticmethod
    def _feed(process: subprocess.Popen, wav_bytes: bytes) -> None:
        """Write the WAV, close stdin and reap the player."""
        try:
            process.stdin.write(wav_bytes)
        except OSError as e:
            # Player exited before reading everything
            sound_logger.debug("Audio player closed its input early", error=e)
        finally:
            try:
                process.stdin.close()
            except OSError:
                pass
        process.wait()

    async def drain(self) -> None:
        """Wait for every playback started on this loop to finish."""
        if self._feeds:
            await asyncio.gather(*list(self._feeds), return_exceptions=True)


class SoundTrigger:
    """
    Plays the notification asset, falling back to a synthesized tone.

    The asset is loaded at most once per instance; a failed load switches to
    the tone for the rest of the session.
    """

    def __init__(
        self,
        asset_path: Optional[str] = None,
        *,
        player: Optional[Player] = None,
        enabled: Optional[bool] = None,
        volume: Optional[float] = None,
        tone_frequency: Optional[float] = None,
        tone_duration: Optional[float] = None,
    ):
        self.asset_path = asset_path if asset_path is not None else settings.SOUND_ASSET_PATH
        self.enabled = enabled if enabled is not None else settings.SOUND_ENABLED
        self._player = player
        self._volume = volume if volume is not None else settings.SOUND_VOLUME
        self._tone_frequency = tone_frequency or settings.SOUND_TONE_FREQUENCY_HZ
        self._tone_duration = tone_duration or settings.SOUND_TONE_DURATION_SECONDS

        self._preloaded = False
        self._asset: Optional[bytes] = None
        self._tone: Optional[bytes] = None
        self._unavailable_logged = False
        self.load_attempts = 0

    @property
    def using_fallback(self) -> bool:
        return self._preloaded and self._asset is None

    def preload(self) -> None:
        """Load and validate the asset once; later calls are no-ops."""
        if self._preloaded:
            return
        self._preloaded = True
        if not self.asset_path:
            sound_logger.debug("No notification sound asset configured, using tone")
            return

        self.load_attempts += 1
        try:
            raw = Path(self.asset_path).read_bytes()
            with wave.open(io.BytesIO(raw), "rb") as wav:
                wav.getnframes()
            self._asset = scale_volume(raw, self._volume)
        except (OSError, EOFError, wave.Error) as e:
            sound_logger.warning("Notification sound file not loadable, will use beep fallback", error=e)
            self._asset = None

    def trigger(self, priority: Priority) -> bool:
        """Play the alert if `priority` warrants one. Returns whether it was attempted."""
        if not should_play_sound(priority):
            return False
        self.play()
        return True

    def play(self) -> None:
        if not self.enabled:
            return
        try:
            self.preload()
            if self._asset is not None:
                try:
                    self._emit(self._asset)
                    return
                except AudioUnavailableError:
                    raise
                except Exception as e:
                    sound_logger.warning("Could not play notification sound file", error=e)
            self._play_tone()
        except AudioUnavailableError as e:
            if not self._unavailable_logged:
                sound_logger.warning("Audio unavailable, alerts will be silent", error=e)
                self._unavailable_logged = True
        except Exception as e:
            sound_logger.warning("Could not play beep sound", error=e)

    async def drain(self) -> None:
        """Wait for sounds still being fed to the player."""
        drain = getattr(self._player, "drain", None)
        if drain is not None:
            await drain()

    def _play_tone(self) -> None:
        if self._tone is None:
            self._tone = synthesize_tone(self._tone_frequency, self._tone_duration)
        self._emit(self._tone)

    def _emit(self, wav_bytes: bytes) -> None:
        if self._player is None:
            self._player = CommandPlayer()
        self._player(wav_bytes)
