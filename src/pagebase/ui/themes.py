"""Textual CSS themes for pagebase."""

APP_CSS = """
/* ── Global ────────────────────────────────── */
Screen {
    background: $surface;
}

/* ── Header & search ───────────────────────── */
#browser-header {
    dock: top;
    height: 3;
    padding: 1 2;
    background: $primary;
    color: $text;
    text-style: bold;
}

#search-input {
    width: 100%;
    margin: 0 2;
}

#bucket-tabs {
    height: 1;
    padding: 0 2;
    background: $surface-darken-1;
}

#bucket-tabs.hidden {
    display: none;
}

/* ── Body columns ──────────────────────────── */
#browser-body {
    height: 1fr;
}

#book-panel {
    width: 30;
    border-right: solid $primary;
}

#page-panel {
    width: 16;
    border-right: solid $primary;
}

#book-list, #page-list {
    height: 1fr;
}

.panel-title {
    padding: 0 1;
    text-style: bold;
    background: $primary-darken-1;
    color: $text;
    height: 1;
}

.panel-status {
    padding: 0 1;
    color: $text-muted;
    height: auto;
}

.panel-status.error {
    color: $error;
}

#image-panel {
    width: 1fr;
    padding: 1 2;
    border-right: solid $primary;
}

#content-panel {
    width: 1fr;
    padding: 1 2;
    overflow-y: auto;
}

/* ── List items ────────────────────────────── */
.book-item, .page-item {
    padding: 0 1;
    height: 1;
}

.book-item.selected, .page-item.selected {
    background: $accent-darken-1;
    text-style: bold;
}

/* ── Loading indicator ─────────────────────── */
.loading-text {
    color: $warning;
    text-style: italic;
}
"""
