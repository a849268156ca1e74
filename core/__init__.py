"""
Core module for the LiveLens pipeline.

Contains the typed messages, the event bus, the latest-value stores, the
pipeline stages, the overlay renderer and the protocol definitions
(interfaces) for the pluggable devices and detection backend.
"""
