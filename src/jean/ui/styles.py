"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.

Layout: chat history on the left, tools panel and log panel on the right,
connection indicator and input bar along the bottom.
"""

APP_CSS = """
/* ============================================
   Main Screen Layout
   ============================================ */
Screen {
    layout: grid;
    grid-size: 2 2;
    grid-columns: 3fr 2fr;
    grid-rows: 1fr auto;
    background: $background;
}

/* ============================================
   Chat History Panel
   ============================================ */
#chat-history {
    height: 100%;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus-within {
        border: round $primary;
    }
}

#right-panel {
    height: 100%;
}

/* ============================================
   Tools Panel
   ============================================ */
#tools-log {
    height: 1fr;
    background: $panel;
    border: round $accent 60%;
    border-title-color: $accent;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    overflow-x: auto;
    scrollbar-gutter: stable;

    &.running {
        border: round $warning;
        border-title-color: $warning;
    }
}

/* ============================================
   Log Panel (hidden until toggled)
   ============================================ */
#log-panel {
    height: 1fr;
    max-height: 16;
    background: $panel;
    border: round $secondary 60%;
    border-title-color: $secondary;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    overflow-x: auto;
    margin-top: 1;
}

/* ============================================
   Bottom Bar - Status + Input
   ============================================ */
#bottom-bar {
    column-span: 2;
    height: auto;
    padding: 0 1 1 1;
    background: $panel;
    border-top: solid $border;
}

#connection-indicator {
    height: 1;
    padding: 0 1;
    color: $text-muted;

    &.connected {
        color: $success;
    }

    &.connecting {
        color: $warning;
    }

    &.disconnected, &.error {
        color: $error;
    }
}

ChatInputBar {
    height: 5;
    border: round $primary 60%;
    background: $panel;

    &:focus-within {
        border: round $primary;
    }
}

#chat-input {
    width: 1fr;
    height: 100%;
    border: none;
    padding: 0 1;
    background: transparent;
}

#send-btn {
    width: 10;
    height: 100%;
    margin: 0 0 0 1;
    border: tall $success;
    background: $success;
    color: $background;
    text-style: bold;

    &:hover {
        background: $success-lighten-1;
    }
}

/* ============================================
   Chat Messages
   ============================================ */
.chat-message {
    width: 100%;
    height: auto;
    margin: 0 0 1 0;
    padding: 0 1;
}

.user-message {
    border-left: tall $success;
    background: $success 8%;

    & .message-header {
        color: $success;
        text-style: bold;
    }
}

.assistant-message {
    border-left: tall $secondary;
    background: $secondary 8%;

    & .message-header {
        color: $secondary;
        text-style: bold;
    }

    &.streaming {
        border-left: tall $accent;
    }

    &.interrupted {
        border-left: tall $warning;
        background: $warning 6%;

        & .message-header {
            color: $warning;
        }
    }
}

.notice-message {
    color: $text-muted;
    text-style: italic;

    &.warning {
        color: $warning;
    }

    &.error {
        color: $error;
        text-style: bold;
    }
}

.message-header {
    height: auto;
}

.message-content {
    height: auto;
    color: $foreground;
}

/* ============================================
   Chrome
   ============================================ */
* {
    scrollbar-background: $panel;
    scrollbar-color: $surface-lighten-1;
    scrollbar-color-hover: $primary 50%;
    scrollbar-size: 1 1;
}

Header {
    background: $panel;
    height: 1;
}

Footer {
    background: $panel;
}

Markdown {
    margin: 0;
    padding: 0;
}

MarkdownFence {
    background: $panel;
    margin: 1 0;
}
"""
