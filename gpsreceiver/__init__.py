"""GPS L1 C/A software receiver blocks: C/A codes, acquisition, tracking, navigation decoding and positioning."""

__version__ = "1.0.0"