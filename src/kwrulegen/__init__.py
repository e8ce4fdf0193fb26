"""kwrulegen - generate SpamAssassin keyword rules from plain keyword lists."""

__version__ = "0.1.0"
