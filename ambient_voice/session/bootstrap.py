"""
Pipeline wiring from AppConfig.

Two stages:
- build_capabilities(config): once per process. Loads every stateless
  capability (recognizers, speaker extractor, synthesizers, codec
  transforms, cues, the OpenAI client). Each on-device model is optional;
  a missing path or a load failure is logged as *_UNAVAILABLE and the
  capability is wired as None for the life of the process.
- build_pipeline(...): once per host connection. Creates the stateful
  parts (VAD, diagnostic sink, profile/record stores) and the Pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from openai import AsyncOpenAI

from ambient_voice.adapters.asr.base import CloudRecognizer, RecognizerUnavailable, StreamingRecognizer
from ambient_voice.adapters.asr.openai_cloud import OpenAICloudRecognizer
from ambient_voice.adapters.asr.sherpa_streaming import SherpaStreamingRecognizer
from ambient_voice.adapters.llm.openai_chat import OpenAIChatBackend
from ambient_voice.adapters.tts.base import SpeechSynthesizer, SynthesizerUnavailable
from ambient_voice.adapters.tts.openai_tts import OpenAISpeechSynthesizer
from ambient_voice.adapters.tts.sherpa_tts import SherpaSpeechSynthesizer
from ambient_voice.audio.cues import AudioCue, CueLibrary
from ambient_voice.audio.diagnostics import WavDiagnosticSink
from ambient_voice.audio.playback import AudioSink
from ambient_voice.audio.transforms import CodecTransformError, CodecTransforms, default_transforms, load_transforms
from ambient_voice.audio.vad import (
    EnergyVoiceActivity,
    SileroVoiceActivity,
    VoiceActivity,
    VoiceActivityUnavailable,
)
from ambient_voice.config import AppConfig
from ambient_voice.observability.logger import log_component
from ambient_voice.session.host_events import HostEventSink
from ambient_voice.session.pipeline import Pipeline
from ambient_voice.session.summary import Summarizer
from ambient_voice.speaker.extractor import EmbeddingExtractor, ExtractorUnavailable, SherpaEmbeddingExtractor
from ambient_voice.speaker.profiles import SpeakerProfileStore


_COMPONENT = "bootstrap"


@dataclass(frozen=True)
class Capabilities:
    openai_client: Any | None
    streaming_recognizer: StreamingRecognizer | None
    cloud_recognizer: CloudRecognizer | None
    extractor: EmbeddingExtractor | None
    cloud_synthesizer: SpeechSynthesizer | None
    local_synthesizer: SpeechSynthesizer | None
    transforms: CodecTransforms
    cues: CueLibrary


def build_capabilities(config: AppConfig) -> Capabilities:
    client = AsyncOpenAI(api_key=config.openai_api_key) if config.cloud_available else None
    if client is None:
        log_component(_COMPONENT, "CLOUD_UNAVAILABLE", reason="OPENAI_API_KEY not set")

    return Capabilities(
        openai_client=client,
        streaming_recognizer=_streaming_recognizer(config),
        cloud_recognizer=(
            OpenAICloudRecognizer(
                client=client,
                api_key=config.openai_api_key,
                model=config.transcribe_model,
                language=config.cloud_asr_language,
            )
            if client is not None
            else None
        ),
        extractor=_extractor(config),
        cloud_synthesizer=(
            OpenAISpeechSynthesizer(
                client=client,
                api_key=config.openai_api_key,
                model=config.tts_model,
                voice=config.tts_voice,
            )
            if client is not None
            else None
        ),
        local_synthesizer=_local_synthesizer(config),
        transforms=_transforms(config),
        cues=CueLibrary({
            AudioCue.EXIT_DIALOG: config.cue_exit_wav,
            AudioCue.INTERRUPTION: config.cue_interruption_wav,
        }),
    )


def build_pipeline(
    *,
    config: AppConfig,
    capabilities: Capabilities,
    host_sink: HostEventSink,
    audio_sink: AudioSink,
    profiles: SpeakerProfileStore | None = None,
    summarizer: Summarizer | None = None,
) -> Pipeline:
    chat_backend = None
    if capabilities.openai_client is not None:
        chat_backend = OpenAIChatBackend(
            client=capabilities.openai_client,
            model=config.chat_model,
            system_prompt=config.system_prompt,
        )

    diagnostic_sink = None
    if config.diagnostic_wav_dir:
        diagnostic_sink = WavDiagnosticSink(config.diagnostic_wav_dir)

    return Pipeline(
        host_sink=host_sink,
        audio_sink=audio_sink,
        vad=_vad(config),
        streaming_recognizer=capabilities.streaming_recognizer,
        cloud_recognizer=capabilities.cloud_recognizer,
        extractor=capabilities.extractor,
        chat_backend=chat_backend,
        cloud_synthesizer=capabilities.cloud_synthesizer,
        local_synthesizer=capabilities.local_synthesizer,
        profiles=profiles,
        transforms=capabilities.transforms,
        cues=capabilities.cues,
        diagnostic_sink=diagnostic_sink,
        summarizer=summarizer,
        cloud_available=config.cloud_available,
        recognizer_timeout_s=config.recognizer_timeout_s,
    )


# ----------------------------------------------------------------------
# Capability loaders
# ----------------------------------------------------------------------

def _vad(config: AppConfig) -> VoiceActivity:
    if config.vad_model_path:
        try:
            return SileroVoiceActivity(model_path=config.vad_model_path)
        except VoiceActivityUnavailable as e:
            log_component(_COMPONENT, "VAD_UNAVAILABLE", error=str(e), fallback="energy")
    return EnergyVoiceActivity()


def _streaming_recognizer(config: AppConfig) -> StreamingRecognizer | None:
    if not (config.asr_encoder_path and config.asr_decoder_path and config.asr_tokens_path):
        log_component(_COMPONENT, "RECOGNIZER_UNAVAILABLE", reason="model paths not set")
        return None
    try:
        return SherpaStreamingRecognizer(
            encoder_path=config.asr_encoder_path,
            decoder_path=config.asr_decoder_path,
            tokens_path=config.asr_tokens_path,
        )
    except RecognizerUnavailable as e:
        log_component(_COMPONENT, "RECOGNIZER_UNAVAILABLE", error=str(e))
        return None


def _extractor(config: AppConfig) -> EmbeddingExtractor | None:
    if not config.speaker_model_path:
        log_component(_COMPONENT, "EXTRACTOR_UNAVAILABLE", reason="model path not set")
        return None
    try:
        return SherpaEmbeddingExtractor(model_path=config.speaker_model_path)
    except ExtractorUnavailable as e:
        log_component(_COMPONENT, "EXTRACTOR_UNAVAILABLE", error=str(e))
        return None


def _local_synthesizer(config: AppConfig) -> SpeechSynthesizer | None:
    if not (config.tts_model_path and config.tts_tokens_path):
        log_component(_COMPONENT, "SYNTHESIZER_UNAVAILABLE", reason="model paths not set")
        return None
    try:
        return SherpaSpeechSynthesizer(
            model_path=config.tts_model_path,
            tokens_path=config.tts_tokens_path,
            data_dir=config.tts_data_dir,
        )
    except SynthesizerUnavailable as e:
        log_component(_COMPONENT, "SYNTHESIZER_UNAVAILABLE", error=str(e))
        return None


def _transforms(config: AppConfig) -> CodecTransforms:
    try:
        return load_transforms(
            expand_path=config.codec_expand_matrix_path,
            inverse_path=config.codec_inverse_matrix_path,
        )
    except (OSError, ValueError, CodecTransformError) as e:
        log_component(_COMPONENT, "CODEC_TRANSFORMS_INVALID", error=str(e), fallback="default")
        return default_transforms()
