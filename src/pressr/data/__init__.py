from __future__ import annotations

from pressr.data.template import DataFileError, RequestTemplate, load_template

__all__ = ["DataFileError", "RequestTemplate", "load_template"]
