"""Trigger velocity constants.

Velocity is the normalised attack strength (0.0-1.0) handed to a voice.
A track without a per-step ``velocity`` list falls back to the default for
its name, then to ``DEFAULT_VELOCITY``.
"""

DEFAULT_VELOCITY = 0.8

ROLE_VELOCITY = {
	"kick": 1.0,
	"pulse": 0.7,
	"snare": 0.9,
	"clap": 0.7,
	"hihat909": 0.8,
	"hihat": 0.5,
	"ride": 0.6,
	"rumble": 0.4,
	"bass": 0.9,
	"lead": 0.6,
	"acid": 0.8,
}

# Velocity written into generated documents, per musical role
GENERATED_VELOCITY = {
	"foundation": 0.8,
	"rhythm": 0.6,
	"harmony": 0.7,
	"texture": 0.7,
	"lead": 0.6,
}

MIN_VELOCITY = 0.0
MAX_VELOCITY = 1.0
