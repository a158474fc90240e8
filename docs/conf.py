# Sphinx configuration for the whatnow API reference

import os
import sys
sys.path.insert(0, os.path.abspath('../src'))

from whatnow import __version__

project = 'whatnow'
copyright = '2026, whatnow contributors'
author = 'whatnow contributors'
release = __version__
version = '.'.join(release.split('.')[:2])

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx.ext.intersphinx',
    'sphinx_autodoc_typehints',
]

exclude_patterns = ['_build']

html_theme = 'sphinx_rtd_theme'

# Public API only; private helpers and the internal queue stay undocumented
autodoc_default_options = {
    'members': True,
    'member-order': 'bysource',
    'show-inheritance': True,
}
autodoc_typehints = 'description'

# Handler and settings docstrings use Google style
napoleon_google_docstring = True
napoleon_numpy_docstring = False

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'pydantic': ('https://docs.pydantic.dev/latest', None),
}
