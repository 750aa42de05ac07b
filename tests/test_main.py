import json
import pathlib

import basedrum.__main__
import basedrum.song


def _write_user (tmp_path: pathlib.Path) -> pathlib.Path:

	"""A user data file for the scenario user."""

	path = tmp_path / "user.json"
	path.write_text(json.dumps({
		"wallet": {"address": "0x1234567890abcdef1234567890abcdef12345678", "balance": "2.5"},
		"onchain": {"transactionCount": 150, "tokenCount": 12, "nftCount": 3},
		"farcaster": {"followerCount": 300, "followingCount": 50},
	}))

	return path


def test_generate_then_validate (tmp_path: pathlib.Path) -> None:

	"""generate writes a valid document that validate accepts."""

	song_path = tmp_path / "song.json"
	config = str(tmp_path / "missing.yaml")

	assert basedrum.__main__.main(["generate", "--config", config, "--user-data", str(_write_user(tmp_path)), "-o", str(song_path)]) == 0

	document = basedrum.song.parse_song_json(song_path.read_text())

	assert document.metadata.bpm == 145
	assert basedrum.__main__.main(["validate", "--config", config, str(song_path)]) == 0


def test_onboard_then_expand (tmp_path: pathlib.Path) -> None:

	"""The onboarding loop expands to 32 bars."""

	loop_path = tmp_path / "loop.json"
	mix_path = tmp_path / "mix.json"
	config = str(tmp_path / "missing.yaml")

	assert basedrum.__main__.main(["onboard", "--config", config, "-o", str(loop_path)]) == 0
	assert basedrum.__main__.main(["expand", "--config", config, str(loop_path), "-o", str(mix_path)]) == 0

	assert basedrum.song.parse_song_json(mix_path.read_text()).steps == 512


def test_validate_reports_issues (tmp_path: pathlib.Path, capsys) -> None:

	"""A bad document exits 1 and lists its problems."""

	path = tmp_path / "bad.json"
	path.write_text(json.dumps({"metadata": {"bpm": 12}, "tracks": {}}))

	assert basedrum.__main__.main(["validate", "--config", str(tmp_path / "missing.yaml"), str(path)]) == 1
	assert "bpm" in capsys.readouterr().err


def test_bad_config_exits_2 (tmp_path: pathlib.Path) -> None:

	"""A malformed config file stops before any command runs."""

	config = tmp_path / "config.yaml"
	config.write_text("logging:\n  level: LOUD\n")

	assert basedrum.__main__.main(["onboard", "--config", str(config)]) == 2


def test_missing_song_file_exits_1 (tmp_path: pathlib.Path) -> None:

	"""File errors are reported, not raised."""

	assert basedrum.__main__.main(["validate", "--config", str(tmp_path / "missing.yaml"), str(tmp_path / "nope.json")]) == 1


def test_malformed_user_data_exits_1 (tmp_path: pathlib.Path) -> None:

	"""Broken JSON or a non-object payload is reported, not raised."""

	config = str(tmp_path / "missing.yaml")
	broken = tmp_path / "broken.json"
	broken.write_text("{not json")
	listed = tmp_path / "list.json"
	listed.write_text("[1, 2, 3]")

	assert basedrum.__main__.main(["generate", "--config", config, "--user-data", str(broken)]) == 1
	assert basedrum.__main__.main(["generate", "--config", config, "--user-data", str(listed)]) == 1
