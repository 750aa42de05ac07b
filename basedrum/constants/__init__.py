"""Constants for BaseDrum.

This package contains:

- ``basedrum.constants`` - Step grid, document format limits and the
  bounds used when deriving musical constraints from user data.
- ``basedrum.constants.velocity`` - Default trigger velocities per track role.
- ``basedrum.constants.durations`` - Note lengths (in steps) per track role.

Values here are tuning data rather than logic.  The generator, validator and
sequencer read them at call time, so they can be adjusted without touching
any algorithm.
"""

# Step grid - one step is a sixteenth note, 16 steps make a bar.

STEPS_PER_BAR = 16
STEPS_PER_BEAT = 4
BEATS_PER_BAR = 4

# Song document format (basedrum-v1)

SONG_FORMAT = "basedrum-v1"

BPM_MIN = 60
BPM_MAX = 200
BARS_MIN = 1
BARS_MAX = 128
STEPS_MIN = 16
STEPS_MAX = 2048
FREQ_MIN = 20.0
FREQ_MAX = 20000.0
REVERB_DECAY_MAX = 10.0

# Remote / template expansion target

EXPANDED_BARS = 32
EXPANDED_STEPS = EXPANDED_BARS * STEPS_PER_BAR

# Constraint defaults (used when no user data is available)

DEFAULT_TEMPO = 140
DEFAULT_KEY = "C"
DEFAULT_MODE = "minor"
DEFAULT_DENSITY = 0.6
DEFAULT_ENERGY = 0.7
DEFAULT_COMPLEXITY = 0.5
DEFAULT_SEED = 12345

# Constraint mapping bounds

TEMPO_BASE = 120
TEMPO_SPAN = 40
TEMPO_ACTIVITY_CAP = 800		# followers + following + transactions
DENSITY_TX_CAP = 250
ENERGY_BALANCE_CAP = 10.0		# ETH
ENERGY_TOKEN_CAP = 20
COMPLEXITY_TOKEN_CAP = 20
COMPLEXITY_NFT_CAP = 50

DENSITY_FLOOR = 0.3
ENERGY_FLOOR = 0.4
COMPLEXITY_FLOOR = 0.2

SEED_MODULUS = 10000

# Sequencer

SILENCE_FLOOR_DB = -50.0
# Effective track level is capped here before the dB to gain conversion
VOLUME_CEILING_DB = 24.0
GHOST_NOTE_VELOCITY = 0.3

# Pitch played when a track has no note for the step; None = unpitched
ROLE_DEFAULT_NOTES = {
	"kick": "C1",
	"pulse": "C2",
	"bass": "A1",
	"lead": "A3",
	"acid": "A2",
}

# Tracks whose hits drive the beat-intensity envelope
BEAT_INTENSITY_TRACKS = ("kick", "snare", "pulse")

# (seconds after the hit, intensity)
INTENSITY_ENVELOPE = (
	(0.0, 1.0),
	(0.05, 0.7),
	(0.1, 0.4),
	(0.15, 0.1),
	(0.2, 0.0),
)

# Per-track trigger delay in seconds, relative to the shared tick time
TRIGGER_OFFSETS = {
	"clap": 0.015,
}
