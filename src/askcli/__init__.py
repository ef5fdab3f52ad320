"""askcli - Terminal chat assistant with per-shell conversation sessions.

Modules:
    - sessions: Session records, file-backed store, active conversation
    - picker: Raw keyboard input and the interactive session picker
    - provider: Chat-completion client
    - clipboard: Clipboard image capture for vision models
    - history: Transcript viewer
    - config: YAML settings with environment overrides
    - cli: The `ask` command
"""

__version__ = "0.3.0"
