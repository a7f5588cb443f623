"""stratum: layered compositor run loop for terminal applications."""

# Backends
from stratum.backend import Backend, TerminalBackend

# Components
from stratum.component import Component, forward_handle_event, forward_view

# Compositor
from stratum.compositor import Compositor

# Configuration
from stratum.config import CompositorConfig

# Per-cycle context
from stratum.context import Callback, Context

# Events
from stratum.events import Event, EventAccess, EventKind

# Identity
from stratum.identity import Id, InvalidIdError, LayerId

# Jobs
from stratum.jobs import JobResult, Jobs, JobsClosedError

# Key splitting
from stratum.keys import KeySplitter, split_keys

# Layers
from stratum.layers import LayerRegistry

# Session guard
from stratum.session import TerminalSession

# Event sources
from stratum.streams import EventMerger, from_queue, on_shutdown, once, ticks

# Drawing surface
from stratum.surface import Buffer, Cell, Rect

# Terminal
from stratum.terminal import (
    KeyInput,
    ProcessTerminal,
    Resize,
    Terminal,
    TerminalInput,
    terminal_events,
)

# Text utilities
from stratum.text import truncate_to_width, visible_width

__all__ = [
    # Backends / surface
    "Backend",
    "Buffer",
    "Cell",
    "Rect",
    "TerminalBackend",
    # Components
    "Component",
    "forward_handle_event",
    "forward_view",
    # Compositor
    "Compositor",
    "CompositorConfig",
    # Context
    "Callback",
    "Context",
    # Events
    "Event",
    "EventAccess",
    "EventKind",
    # Identity
    "Id",
    "InvalidIdError",
    "LayerId",
    # Jobs
    "JobResult",
    "Jobs",
    "JobsClosedError",
    # Keys
    "KeySplitter",
    "split_keys",
    # Layers
    "LayerRegistry",
    # Session
    "TerminalSession",
    # Event sources
    "EventMerger",
    "from_queue",
    "on_shutdown",
    "once",
    "ticks",
    # Terminal
    "KeyInput",
    "ProcessTerminal",
    "Resize",
    "Terminal",
    "TerminalInput",
    "terminal_events",
    # Text
    "truncate_to_width",
    "visible_width",
]
