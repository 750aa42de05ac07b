"""Trigger durations per track, in steps (1 step = one sixteenth note).

Multiply by the sequencer's ``seconds_per_step`` to get the duration handed
to a voice::

    duration = durations.TRACK_DURATION_STEPS.get(name, durations.DEFAULT) * seq.seconds_per_step
"""

SIXTEENTH = 1
EIGHTH = 2
QUARTER = 4
HALF = 8

DEFAULT = EIGHTH
GHOST = SIXTEENTH

TRACK_DURATION_STEPS = {
	"kick": EIGHTH,
	"pulse": EIGHTH,
	"snare": EIGHTH,
	"clap": SIXTEENTH,
	"hihat909": SIXTEENTH,
	"hihat": EIGHTH,
	"ride": SIXTEENTH,
	"rumble": HALF,
	"bass": QUARTER,
	"lead": QUARTER,
	"acid": SIXTEENTH,
}
