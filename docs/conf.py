# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import os
import sys

# Add project root to path so we can import ksengine
sys.path.insert(0, os.path.abspath("../src"))

# -- Project information -----------------------------------------------------

project = "ksengine"
author = "ksengine developers"

import ksengine  # noqa: E402

version = ksengine.__version__
release = ksengine.__version__

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",  # Auto-generate API docs from docstrings
    "sphinx.ext.autosummary",  # Generate summary tables
    "sphinx.ext.viewcode",  # Add links to highlighted source code
    "sphinx.ext.intersphinx",  # Link to other project's documentation
    "numpydoc",  # NumPy docstring support
]

# Numpydoc settings
numpydoc_show_class_members = False  # Don't show inherited members
numpydoc_class_members_toctree = False

# Autodoc settings
autodoc_default_options = {
    "members": True,
    "member-order": "bysource",
    "undoc-members": True,
    "exclude-members": "__weakref__",
}

autosummary_generate = True

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "numpy": ("https://numpy.org/doc/stable/", None),
}

exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

master_doc = "index"

# -- Options for HTML output -------------------------------------------------

html_theme = "alabaster"
htmlhelp_basename = "ksenginedoc"
