"""Gradio user interface for Prompt Gallery.

Modules
-------
app
    Blocks layout, event wiring and the ``main()`` entry point.
handlers
    Async event handlers delegating to the gallery orchestrator.
state
    Lazy per-session orchestrator creation and the shared page memo.
models
    ``UIState`` and UI constants.
"""
