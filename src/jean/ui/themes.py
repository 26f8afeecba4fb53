"""Theme definitions for the TUI.

This module hides the color palette. To add a theme, define it here and
register it in JeanApp.on_mount.
"""

from textual.theme import Theme

# Gruvbox-inspired dark palette; connection states map onto success/warning/error
JEAN_DARK = Theme(
    name="jean-dark",
    primary="#83a598",      # Aqua-blue - chat accent
    secondary="#d3869b",    # Purple - assistant messages
    accent="#fabd2f",       # Yellow - tools panel
    foreground="#ebdbb2",
    background="#1d2021",
    success="#b8bb26",      # Connected, user messages
    warning="#fe8019",      # Connecting, interrupted messages
    error="#fb4934",        # Disconnected, errors
    surface="#282828",
    panel="#232627",
    dark=True,
    variables={
        "block-cursor-foreground": "#1d2021",
        "block-cursor-background": "#ebdbb2",
        "block-cursor-text-style": "bold",
        "input-cursor-background": "#ebdbb2",
        "input-cursor-foreground": "#1d2021",
        "input-selection-background": "#83a598 30%",
        "border": "#504945",
        "border-blurred": "#3c3836",
        "scrollbar": "#3c3836",
        "scrollbar-hover": "#504945",
        "scrollbar-active": "#83a598",
        "scrollbar-background": "#232627",
        "footer-key-foreground": "#fabd2f",
        "footer-background": "#1d2021",
        "text-muted": "#928374",
    },
)
