"""Constants and configuration defaults for the linemark engine."""

class EngineConstants:
    """Central configuration constants for the engine."""

    # Rendering
    PARALLEL_RENDER_THRESHOLD = 50  # Batches this large fan out to worker threads
    EMPTY_LINE_HTML = "<br>"

    # Block classification
    MATH_DELIMITERS = {"$$": "$$", "\\[": "\\]"}  # Opener -> closer
    TAB_SIZE = 4

    # Terminal geometry
    DEFAULT_TERMINAL_COLUMNS = 80
    ROW_HEIGHT = 1  # Terminal cells per wrapped row

    # Search highlight classes
    HIGHLIGHT_CLASS = "search-highlight"
    HIGHLIGHT_CURRENT_CLASS = "search-highlight-current"

    # File operations
    CONFIG_APP_NAME = "linemark"
    CONFIG_FILE_NAME = "config.json"
