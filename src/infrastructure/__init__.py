"""Infrastructure Layer.

Adapters that perform I/O (network, image codecs) and return domain Value
Objects.
"""
