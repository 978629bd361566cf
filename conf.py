# Sphinx configuration for the promocode codec API docs.
# Build from the project root:  sphinx-build -b html . _build/html

import os
import sys

# app/ and rules/ are namespace packages at the root; autodoc imports them from here.
sys.path.insert(0, os.path.abspath("."))

project = "Promocode Studio"
author = "Promocode Studio maintainers"
copyright = "2025"
release = "0.1.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",   # Args:/Returns:/Raises: blocks in encode/decode
    "sphinx.ext.viewcode",
    "sphinx.ext.autosummary",
]
autosummary_generate = True

# The UI and the HTTP client aren't needed to document the codec itself.
autodoc_mock_imports = ["streamlit", "httpx", "dotenv"]

autodoc_default_options = {
    "members": True,
    "undoc-members": False,
    "member-order": "bysource",
}
autodoc_typehints = "description"

napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_use_rtype = False

templates_path = ["_templates"]
exclude_patterns = ["_build", "tests", "scripts", "Thumbs.db", ".DS_Store"]

html_theme = "alabaster"
html_title = f"{project} {release}"
pygments_style = "sphinx"
