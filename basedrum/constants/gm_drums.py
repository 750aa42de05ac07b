"""General MIDI Level 1 drum notes used by the MIDI voices.

Standard MIDI percussion assignments for channel 10 (0-indexed channel 9).
"""

DRUM_CHANNEL = 9

KICK_1 = 36
SIDE_STICK = 37
SNARE_1 = 38
HAND_CLAP = 39
LOW_FLOOR_TOM = 41
HI_HAT_CLOSED = 42
HI_HAT_OPEN = 46
RIDE_1 = 51
