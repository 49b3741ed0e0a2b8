"""PitchFlow: pitch-deck intake, analysis routing and status propagation."""

__version__ = "0.4.0"
