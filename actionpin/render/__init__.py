"""Binding rendering — Python source generated from action metadata."""

from actionpin.render.binding import HEADER, BindingRenderer, content_hash, file_hash

__all__ = ["HEADER", "BindingRenderer", "content_hash", "file_hash"]
