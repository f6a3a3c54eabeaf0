"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
Uses Textual CSS features: nesting, pseudo-classes, variables.
"""

APP_CSS = """
/* ============================================
   Main Screen Layout
   ============================================ */
Screen {
    layout: vertical;
    background: $background;
}

/* ============================================
   API Key Banner
   ============================================ */
#key-banner {
    height: auto;
    margin: 0 1;
    padding: 0 1;
    border: round $warning;
    border-title-color: $warning;
    border-title-style: bold;

    .key-row {
        height: auto;
    }

    .key-label {
        width: 28;
        padding: 1 1 0 0;
        color: $text;
    }

    Input {
        width: 1fr;
    }
}

/* ============================================
   Search Toggle
   ============================================ */
#search-toggle {
    height: auto;
    align: center middle;

    .toggle-label {
        padding: 1 1 0 0;
        color: $text-muted;
    }

    .toggle-state {
        padding: 1 0 0 1;
        color: $text-muted;

        &.-enabled {
            color: $success;
        }
    }
}

/* ============================================
   Chat Columns
   ============================================ */
#columns {
    height: 1fr;
    layout: horizontal;
}

ChatColumnView {
    width: 1fr;
    height: 100%;
    margin: 0 1;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-subtitle-color: $text-muted;

    &.-loading {
        border: round $accent;
    }

    .column-note {
        height: auto;
        color: $text-muted;
        text-style: italic;
        text-align: center;
    }

    .column-messages {
        height: 1fr;
        padding: 0 1;
        scrollbar-gutter: stable;
    }

    .column-waiting {
        height: auto;
        color: $text-muted;
        text-style: italic;
    }

    .column-error {
        height: auto;
        padding: 0 1;
        background: $error 20%;
        color: $error;
    }
}

/* ============================================
   Messages
   ============================================ */
MessageView {
    height: auto;
    margin: 1 0 0 0;
    padding: 0 1;

    &.user-message {
        border-left: thick $secondary;
    }

    &.model-message {
        border-left: thick $primary;
    }

    &.-failed {
        border-left: thick $error;
    }

    .message-header {
        color: $text-muted;
        text-style: bold;
    }

    .message-sources {
        height: auto;
        color: $text-muted;
    }

    .message-error {
        height: auto;
        color: $error;
    }
}

/* ============================================
   Log Panel
   ============================================ */
#debug-panel {
    height: 10;
    margin: 0 1;
    border: round $secondary 60%;
    border-title-color: $secondary;
}

/* ============================================
   Input Bar
   ============================================ */
#chat-input-bar {
    height: auto;
    max-height: 8;
    margin: 0 1;

    TextArea {
        width: 1fr;
        height: auto;
        min-height: 3;
        max-height: 8;
        border: round $primary 60%;

        &:focus {
            border: round $primary;
        }
    }

    Button {
        margin: 0 0 0 1;
        min-width: 10;
    }
}
"""
