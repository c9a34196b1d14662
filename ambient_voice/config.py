"""
Application configuration.

Responsibilities:
- Read environment variables
- Provide a typed, immutable config object
- Decide which optional capabilities are configured (model paths, cloud key)

Non-responsibilities:
- No behavioral constants (see constants.py)
- No model loading
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from ambient_voice.constants import RECOGNIZER_TIMEOUT_S_DEFAULT


DEFAULT_SYSTEM_PROMPT = (
    "You are Buddie, a voice companion listening through the user's earpiece. "
    "Turns labelled 'others' come from people near the user. "
    "Answer the user briefly, in plain spoken sentences."
)


def _optional(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup and passed to the pipeline bootstrap.
    Every on-device model path is optional: a missing path means the
    capability is unavailable and its component runs in degraded mode.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    host: str
    port: int

    # ------------------------------------------------------------------
    # Cloud (OpenAI)
    # ------------------------------------------------------------------

    openai_api_key: str | None
    chat_model: str
    transcribe_model: str
    cloud_asr_language: str
    tts_model: str
    tts_voice: str
    system_prompt: str

    # ------------------------------------------------------------------
    # On-device models
    # ------------------------------------------------------------------

    vad_model_path: str | None
    speaker_model_path: str | None
    asr_encoder_path: str | None
    asr_decoder_path: str | None
    asr_tokens_path: str | None
    tts_model_path: str | None
    tts_tokens_path: str | None
    tts_data_dir: str | None

    # ------------------------------------------------------------------
    # Wearable codec
    # ------------------------------------------------------------------

    codec_expand_matrix_path: str | None
    codec_inverse_matrix_path: str | None

    # ------------------------------------------------------------------
    # Playback cues / diagnostics
    # ------------------------------------------------------------------

    cue_exit_wav: str | None
    cue_interruption_wav: str | None
    diagnostic_wav_dir: str | None

    # ------------------------------------------------------------------
    # Speaker profiles
    # ------------------------------------------------------------------

    speaker_profiles_path: str | None

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    recognizer_timeout_s: float

    @property
    def cloud_available(self) -> bool:
        """Cloud recognition and cloud TTS are usable only with an API key."""
        return bool(self.openai_api_key)

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable cannot be parsed.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8000")),

            openai_api_key=_optional("OPENAI_API_KEY"),
            chat_model=os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini"),
            transcribe_model=os.environ.get("OPENAI_TRANSCRIBE_MODEL", "whisper-1"),
            cloud_asr_language=os.environ.get("CLOUD_ASR_LANGUAGE", "en"),
            tts_model=os.environ.get("OPENAI_TTS_MODEL", "tts-1"),
            tts_voice=os.environ.get("OPENAI_TTS_VOICE", "nova"),
            system_prompt=os.environ.get("SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),

            vad_model_path=_optional("VAD_MODEL_PATH"),
            speaker_model_path=_optional("SPEAKER_MODEL_PATH"),
            asr_encoder_path=_optional("ASR_ENCODER_PATH"),
            asr_decoder_path=_optional("ASR_DECODER_PATH"),
            asr_tokens_path=_optional("ASR_TOKENS_PATH"),
            tts_model_path=_optional("TTS_MODEL_PATH"),
            tts_tokens_path=_optional("TTS_TOKENS_PATH"),
            tts_data_dir=_optional("TTS_DATA_DIR"),

            codec_expand_matrix_path=_optional("CODEC_EXPAND_MATRIX_PATH"),
            codec_inverse_matrix_path=_optional("CODEC_INVERSE_MATRIX_PATH"),

            cue_exit_wav=_optional("CUE_EXIT_WAV"),
            cue_interruption_wav=_optional("CUE_INTERRUPTION_WAV"),
            diagnostic_wav_dir=_optional("DIAGNOSTIC_WAV_DIR"),

            speaker_profiles_path=_optional("SPEAKER_PROFILES_PATH"),

            recognizer_timeout_s=float(
                os.environ.get("RECOGNIZER_TIMEOUT_S", str(RECOGNIZER_TIMEOUT_S_DEFAULT))
            ),
        )
