"""Sphinx configuration for the imagestyles API reference."""

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

project = "imagestyles"
author = "imagestyles Contributors"
try:
    release = get_version("imagestyles")
except PackageNotFoundError:
    release = "0.1.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.intersphinx",
    "sphinx.ext.napoleon",
]

root_doc = "index"
exclude_patterns = ["_build"]
html_theme = "alabaster"

# Documented modules import google-cloud-storage and OpenTelemetry exporters;
# building the reference does not need them installed
autodoc_mock_imports = ["google", "opentelemetry"]
autodoc_member_order = "bysource"
autodoc_typehints = "description"
autodoc_default_options = {
    "members": True,
    "show-inheritance": True,
}

intersphinx_mapping = {
    "python": ("https://docs.python.org/3/", None),
    "pydantic": ("https://docs.pydantic.dev/latest/", None),
    "PIL": ("https://pillow.readthedocs.io/en/stable/", None),
}

napoleon_google_docstring = True
napoleon_numpy_docstring = False
