"""All magic numbers and configuration constants."""

# Section kinds
KIND_BODY = "body"
KIND_BIBLIOGRAPHY = "bibliography"
KIND_APPENDIX = "appendix"
KIND_SUMMARY = "summary"                     # reserved, never produced by the parser

# Playback statuses
STATUS_IDLE = "idle"
STATUS_PLAYING = "playing"
STATUS_PAUSED = "paused"

UNTITLED = "Untitled"
DEFAULT_SECTION_ID = "main"
DEFAULT_SECTION_TITLE = "Main Content"

# Run merger
DEFAULT_BODY_FONT_SIZE = 11.0                # pt, used when a document has no lines
PAGE_NUMBER_MAX_CHARS = 5                    # numeric lines shorter than this are page numbers
SAME_FONT_SIZE_DELTA = 1.0                   # pt, size change that starts a new paragraph
HEADING_LINE_SIZE_DELTA = 0.5                # pt above body for a line to look like a heading
HEADING_LINE_MAX_CHARS = 80

# Heading classifier
HEADING_SIZE_DELTA = 0.3                     # pt above body for a paragraph to count as larger
HEADING_MAX_CHARS = 80
HEADING_MIN_CHARS = 3
TITLE_SIZE_DELTA = 3.0                       # pt above body on page 1 → document title, not a heading

# Metadata extractor
TITLE_MIN_BODY_DELTA = 1.5                   # title must be at least this much above body size
TITLE_MAX_SIZE_DELTA = 1.0                   # and within this of the largest size on page 1
TITLE_MIN_CHARS = 3
TITLE_FALLBACK_SCAN = 15                     # paragraphs scanned by the pattern fallback
TITLE_FALLBACK_MAX_CHARS = 150
AUTHOR_SCAN = 15                             # paragraphs scanned after the title
AUTHOR_PARAGRAPH_MAX_CHARS = 200             # longer paragraphs end the author scan
AUTHOR_LIST_MAX_CHARS = 150
AUTHOR_MARKER_LINE_MAX_CHARS = 80
MAX_AUTHORS = 10

# Segmenter
MIN_PARAGRAPH_CHARS = 10
MIN_SENTENCE_CHARS = 20
MIN_FRAGMENT_CHARS = 15                      # shorter fragments merge onto the previous sentence

# Sequence builder (seconds)
SILENCE_AFTER_META = 0.4
SILENCE_BEFORE_HEADING = 0.3
SILENCE_AFTER_HEADING = 0.35
SILENCE_BEFORE_CONCLUSION = 0.5
SILENCE_AFTER_CONCLUSION = 0.5

# Playback
SPEED_MIN = 0.25
SPEED_MAX = 3.5
DISPLAY_WINDOW_RADIUS = 2                    # sentences shown either side of the current one
JUMP_SETTLE_SECONDS = 0.15                   # gap between cancelling and restarting narration
UTTERANCE_PITCH = 0.95
ENGINE_BASE_RATE = 0.5                       # engine's normal speaking rate
ENGINE_MIN_RATE = 0.1
ENGINE_MAX_RATE = 0.6
DEFAULT_WORDS_PER_SECOND = 2.8               # pacing of the simulated engine at base rate

# Offline rendering
TTS_RETRY_COUNT = 3                          # max retries per TTS clip
TTS_RETRY_BASE_DELAY = 1.0                   # seconds, base delay for exponential backoff
TTS_RATE_MIN_PERCENT = -50                   # edge-tts relative rate bounds
TTS_RATE_MAX_PERCENT = 100
NARRATOR_VOICE = "en-US-AriaNeural"
OUTPUT_BITRATE = "192k"
OUTPUT_DIR = "output"
VERSION = "0.1.0"
