"""
CONSTANTS
---------
Single source of truth for the behavioral invariants of the pipeline.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Deployment-specific values (paths, keys) live in config.py instead.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Audio Format (PCM16 mono @ 16kHz)
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_CHANNELS: Final[int] = 1
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)

# Outbound speech frames (server → host)
AUDIO_FRAME_MS: Final[int] = 20
AUDIO_SAMPLES_PER_FRAME: Final[int] = (AUDIO_SAMPLE_RATE_HZ * AUDIO_FRAME_MS) // 1000
AUDIO_BYTES_PER_FRAME_PCM: Final[int] = AUDIO_SAMPLES_PER_FRAME * AUDIO_SAMPLE_WIDTH_BYTES

S2C_SEQ_NUM_BYTES: Final[int] = 4
S2C_RUN_ID_BYTES: Final[int] = 4
S2C_FRAME_BYTES_TOTAL: Final[int] = (
    S2C_SEQ_NUM_BYTES + S2C_RUN_ID_BYTES + AUDIO_BYTES_PER_FRAME_PCM
)
SEQ_NUM_START: Final[int] = 1
SEQ_NUM_MAX: Final[int] = 2**32 - 1  # u32 wraparound

# =============================================================================
# Wearable BLE packets
# =============================================================================

WEARABLE_PACKET_BYTES: Final[int] = 244
WEARABLE_PAYLOAD_OFFSET: Final[int] = 1
WEARABLE_SUBFRAME_BYTES: Final[int] = 80
WEARABLE_SUBFRAMES_PER_PACKET: Final[int] = 3

MARKER_AUDIO_A: Final[int] = 0xFF
MARKER_AUDIO_B: Final[int] = 0xFE
MARKER_HEARTBEAT_ON: Final[int] = 0x01
MARKER_HEARTBEAT_OFF: Final[int] = 0x00

# A heartbeat-off only counts once the last heartbeat-on is this old
HEARTBEAT_OFF_DEBOUNCE_MS: Final[int] = 2000
BONE_CONDUCTION_INITIAL: Final[bool] = True

# Sub-frame codec: 80 bytes = 40 little-endian int16 coefficients
CODEC_COEFFICIENTS: Final[int] = WEARABLE_SUBFRAME_BYTES // AUDIO_SAMPLE_WIDTH_BYTES
CODEC_COEFFICIENT_SCALE: Final[float] = 1.0 / 32768.0
CODEC_DEFAULT_FREQUENCY_BINS: Final[int] = 128

# Reconstructed samples leave the decoder in batches of exactly this size
DECODER_BATCH_SAMPLES: Final[int] = 512

# =============================================================================
# Ingest
# =============================================================================

INGEST_FRAME_SOURCE_MICROPHONE: Final[int] = 0x01
INGEST_FRAME_SOURCE_WEARABLE: Final[int] = 0x02

INGEST_QUEUE_MAX_S: Final[float] = 10.0

# =============================================================================
# Voice activity / segmentation
# =============================================================================

VAD_WINDOW_SAMPLES: Final[int] = 512
VAD_MIN_SILENCE_S: Final[float] = 0.25
VAD_MIN_SPEECH_S: Final[float] = 0.5
VAD_MAX_SPEECH_S: Final[float] = 5.0
VAD_BUFFER_S: Final[float] = 2.0
VAD_NUM_THREADS: Final[int] = 1

# Energy detector (deterministic fallback)
ENERGY_VAD_RMS_THRESHOLD: Final[float] = 0.02
ENERGY_VAD_START_WINDOWS: Final[int] = 2
ENERGY_VAD_HANGOVER_WINDOWS: Final[int] = 8

SEGMENT_SILENCE_PADDING_S: Final[float] = 5.0

# =============================================================================
# Speaker attribution
# =============================================================================

SPEAKER_EMBEDDING_DIM: Final[int] = 512
SPEAKER_MODEL_TAG: Final[str] = "3dspeaker_eres2net_base_200k"

PRIMARY_USER_NAME: Final[str] = "user"
LEGACY_PRIMARY_USER_NAMES: Final[Tuple[str, ...]] = ("main_user",)

QUALITY_MIN_MAGNITUDE: Final[float] = 0.01
QUALITY_MIN_VARIANCE: Final[float] = 0.001

COSINE_NORM_EPSILON: Final[float] = 1e-10

THRESHOLD_HISTORY_LIMIT: Final[int] = 50
THRESHOLD_BASELINE: Final[float] = 0.65
THRESHOLD_USER_DOMINANT: Final[float] = 0.75
THRESHOLD_USER_SPARSE: Final[float] = 0.55
USER_RATIO_HIGH: Final[float] = 0.8
USER_RATIO_LOW: Final[float] = 0.3

SIMILARITY_HISTORY_MAX: Final[int] = 20

# =============================================================================
# Enrollment
# =============================================================================

ENROLLMENT_TEXT_SIMILARITY_MIN: Final[float] = 0.5

ENROLLMENT_PHRASES: Final[Tuple[str, ...]] = (
    "诶，等下我们去哪吃饭？",
    "上次讨论的那个事办得怎么样了？",
    "诶呦卧槽，你是真的牛逼",
    "不用打伞，外面没有下雨",
    "你这点的什么？看起来还怪好吃的",
    "我等下还有个会要开，你们先去吧",
    "今天的天气这么好，不去打球可惜了",
    "有没有人想一块去搞杯咖啡喝喝的？",
    "就这么开始吧",
)

# =============================================================================
# Recognition
# =============================================================================

RECOGNIZER_TIMEOUT_S_DEFAULT: Final[float] = 10.0

# Streaming recognizer needs trailing silence to flush its last tokens
STREAMING_TAIL_PADDING_S: Final[float] = 0.66

# Repetitions beyond this count collapse to a single occurrence
REPETITION_COLLAPSE_MIN: Final[int] = 6

WAKE_WORD_HOMOPHONES: Final[Tuple[Tuple[str, str], ...]] = (
    ("Buddy", "Buddie"),
    ("buddy", "buddie"),
)

# =============================================================================
# Dialogue
# =============================================================================

WAKE_PHRASES: Final[Tuple[str, ...]] = (
    "buddie",
    "buddy",
    "hi, buddy",
    "hi, buddie",
    "body",
)

EXIT_PHRASES: Final[Tuple[str, ...]] = (
    "just listen",
    "buddie, just listen",
    "just listen, buddie",
    "buddy, just listen",
    "just listen buddy",
)

# Chat session truncation (oldest turns dropped first)
MAX_CONTEXT_TURNS: Final[int] = 16
MAX_CONTEXT_CHARS: Final[int] = 8_000

# =============================================================================
# Speakable chunking of completion deltas
# =============================================================================

TTS_MIN_CHUNK_LEN_CHARS: Final[int] = 20
TTS_SIZE_TRIGGER_CHARS: Final[int] = 120
TTS_HARD_CAP_CHARS: Final[int] = 200
TTS_LOOKBACK_CHARS: Final[int] = 20

TTS_SENTENCE_BREAK_CHARS: Final[Tuple[str, ...]] = (
    ".", "!", "?", "\n", "。", "！", "？",
)
TTS_PREFERRED_BREAK_CHARS: Final[Tuple[str, ...]] = (
    ",", ";", ":", "，", "；", "：",
)
TTS_WHITESPACE_BREAK_CHARS: Final[Tuple[str, ...]] = (" ", "\t")

# =============================================================================
# Playback
# =============================================================================

CLOUD_TTS_SAMPLE_RATE_HZ: Final[int] = 24_000

CUE_TONE_AMPLITUDE: Final[float] = 0.3
CUE_EXIT_TONE_HZ: Final[float] = 880.0
CUE_EXIT_TONE_MS: Final[int] = 160
CUE_INTERRUPTION_TONE_HZ: Final[float] = 520.0
CUE_INTERRUPTION_TONE_MS: Final[int] = 90

# =============================================================================
# Dialogue summary windows
# =============================================================================

SUMMARY_CHECK_INTERVAL_S: Final[float] = 30.0
SUMMARY_MIN_CHARS: Final[int] = 100
SUMMARY_MAX_CHARS: Final[int] = 2000
SUMMARY_IDLE_MS: Final[int] = 15_000
