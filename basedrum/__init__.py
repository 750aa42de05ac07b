"""
BaseDrum - identity data in, drum patterns out.

BaseDrum turns a read-only snapshot of someone's onchain and social
activity (transactions, tokens, NFTs, followers, ETH balance and price)
into a deterministic drum-machine loop, then plays it through a real-time
step sequencer that drives MIDI voices.

What it does:

- **Deterministic generation.** The same identity always gives the same
  loop.  Constraints (tempo, key, mode, density, energy, complexity) are
  bounded functions of the data; a seeded generator picks templates and
  varies them without ever touching the downbeats.  Every track carries a
  sentence explaining which data made it.
- **Onboarding rules.** A simpler threshold tier: more transactions give a
  busier kick, more followers more claps, more tokens a busier bassline,
  and the wallet address itself is read as a melody.
- **Song documents.** ``basedrum-v1`` JSON documents are validated with
  pydantic before anything plays them.  Bad documents are rejected whole.
- **Arrangement.** A one-bar loop expands into a 32-bar dance
  arrangement (intro, buildups, breakdowns, peaks) locally by template,
  or remotely by a producer service whose answer is validated like any
  other document.
- **Step sequencer.** Sixteenth-note steps on an asyncio clock with a
  hybrid sleep+spin wait.  Documents swap between ticks without losing
  phase, sections shape the mix, and kick/snare hits drive a
  beat-intensity envelope for visuals.
- **Observers.** Step and intensity callbacks, OSC out/in, and a
  WebSocket broadcaster for browsers.

Minimal example:

    ```python
    import asyncio
    import basedrum

    async def main ():
        session = basedrum.Session()
        session.generate({"onchain": {"transactionCount": 150}})
        await session.initialize()
        await session.play()
        await asyncio.sleep(30)
        await session.dispose()

    asyncio.run(main())
    ```

Package-level exports: ``Session``, ``SongDocument``, ``UserDataVector``,
``generate_song``, ``validate_song``.
"""

import basedrum.pattern_generator
import basedrum.session
import basedrum.song
import basedrum.user_data


Session = basedrum.session.Session
SongDocument = basedrum.song.SongDocument
UserDataVector = basedrum.user_data.UserDataVector
generate_song = basedrum.pattern_generator.generate_song
validate_song = basedrum.song.validate_song
