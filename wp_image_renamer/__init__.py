"""WordPress Image Renamer - SEO naming and upload tooling for WordPress media.

This package connects to WordPress sites over the REST API, suggests
SEO-friendly filenames and alt text with a hosted LLM, uploads renamed
images to the media library and swaps image references in Elementor layouts.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
