"""Mirror an Odysee channel to local storage and republish it as an RSS feed."""

__version__ = "0.1.0"
