import asyncio
import logging

import basedrum
import basedrum.config
import basedrum.osc

logging.basicConfig(level=logging.INFO)

# Identity data as it arrives from a wallet and a social profile.
USER_DATA = {
	"wallet": {"address": "0x1234567890abcdef1234567890abcdef12345678", "balance": "2.5", "isConnected": True},
	"onchain": {"transactionCount": 150, "tokenCount": 12, "nftCount": 3},
	"farcaster": {"followerCount": 300, "followingCount": 50},
}

LOOP_SECONDS = 8


async def main () -> None:

	"""Generate a loop, play it, then swap in the 32-bar mix without stopping."""

	config = basedrum.config.load_config()
	session = basedrum.Session(config)

	document = session.generate(USER_DATA)

	for track in session.tracks:
		logging.info(f"{track.name}: {track.reason}")

	# /mute/<track>, /unmute/<track> and /bpm from any OSC controller.
	bridge = basedrum.osc.OscBridge(session, config.osc_receive_port, config.osc_send_port, config.osc_send_host)

	await session.initialize()
	await bridge.start()

	try:
		await session.play()
		await asyncio.sleep(LOOP_SECONDS)

		# The step counter keeps running across the swap.
		if config.expansion_endpoint:
			await session.expand_remote()
		else:
			session.expand_local()

		logging.info(f"Now playing '{session.document.metadata.title}' (was '{document.metadata.title}')")

		await asyncio.sleep(LOOP_SECONDS * 4)

	finally:
		await bridge.stop()
		await session.dispose()


if __name__ == "__main__":
	asyncio.run(main())
