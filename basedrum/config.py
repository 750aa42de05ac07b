"""YAML configuration for sessions and the command line.

Example ``config.yaml``::

	midi:
	  output_device: "IAC Driver Bus 1"
	sequencer:
	  spin_wait: true
	  silence_floor_db: -50
	expansion:
	  endpoint: "http://localhost:3000/api/improve-song"
	  timeout: 90
	osc:
	  enabled: true
	  send_host: "127.0.0.1"
	  send_port: 9001
	  receive_port: 9000
	web_ui:
	  enabled: false
	  ws_port: 8765
	logging:
	  level: INFO

Every key is optional.
"""

import dataclasses
import logging
import os
import typing

import yaml

import basedrum.constants


logger = logging.getLogger(__name__)


class ConfigError (ValueError):

	"""The configuration file or mapping is malformed."""


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclasses.dataclass(frozen=True)
class SessionConfig:

	output_device: typing.Optional[str] = None
	interactive: bool = False
	spin_wait: bool = True
	silence_floor_db: float = basedrum.constants.SILENCE_FLOOR_DB
	expansion_endpoint: typing.Optional[str] = None
	expansion_timeout: float = 60.0
	osc_enabled: bool = False
	osc_send_host: str = "127.0.0.1"
	osc_send_port: int = 9001
	osc_receive_port: int = 9000
	web_ui_enabled: bool = False
	ws_port: int = 8765
	log_level: str = "INFO"

	@classmethod
	def from_mapping (cls, data: typing.Optional[typing.Mapping[str, typing.Any]]) -> "SessionConfig":

		"""
		Build a config from the parsed YAML structure.

		Raises:
			ConfigError: When a section is not a mapping or a value has the
				wrong type.
		"""

		if data is None:
			return cls()

		if not isinstance(data, typing.Mapping):
			raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

		midi = _section(data, "midi")
		sequencer = _section(data, "sequencer")
		expansion = _section(data, "expansion")
		osc = _section(data, "osc")
		web_ui = _section(data, "web_ui")
		logging_section = _section(data, "logging")

		level = _get(logging_section, "logging.level", str, "INFO").upper()

		if level not in _LOG_LEVELS:
			raise ConfigError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}, got {level!r}")

		timeout = _get(expansion, "expansion.timeout", (int, float), 60.0)

		if timeout <= 0:
			raise ConfigError("expansion.timeout must be positive")

		return cls(
			output_device = _get(midi, "midi.output_device", str, None),
			interactive = _get(midi, "midi.interactive", bool, False),
			spin_wait = _get(sequencer, "sequencer.spin_wait", bool, True),
			silence_floor_db = float(_get(sequencer, "sequencer.silence_floor_db", (int, float), basedrum.constants.SILENCE_FLOOR_DB)),
			expansion_endpoint = _get(expansion, "expansion.endpoint", str, None),
			expansion_timeout = float(timeout),
			osc_enabled = _get(osc, "osc.enabled", bool, False),
			osc_send_host = _get(osc, "osc.send_host", str, "127.0.0.1"),
			osc_send_port = _port(osc, "osc.send_port", 9001),
			osc_receive_port = _port(osc, "osc.receive_port", 9000),
			web_ui_enabled = _get(web_ui, "web_ui.enabled", bool, False),
			ws_port = _port(web_ui, "web_ui.ws_port", 8765),
			log_level = level,
		)


def _section (data: typing.Mapping[str, typing.Any], name: str) -> typing.Mapping[str, typing.Any]:

	value = data.get(name)

	if value is None:
		return {}

	if not isinstance(value, typing.Mapping):
		raise ConfigError(f"'{name}' must be a mapping, got {type(value).__name__}")

	return value


def _get (section: typing.Mapping[str, typing.Any], path: str, kind: typing.Any, default: typing.Any) -> typing.Any:

	value = section.get(path.split(".")[-1])

	if value is None:
		return default

	# bool is an int subclass; do not accept true/false where a number is expected
	if isinstance(value, bool) and kind is not bool:
		raise ConfigError(f"'{path}' must be a number or string, got a boolean")

	if not isinstance(value, kind):
		expected = kind.__name__ if isinstance(kind, type) else " or ".join(k.__name__ for k in kind)
		raise ConfigError(f"'{path}' must be {expected}, got {type(value).__name__}")

	return value


def _port (section: typing.Mapping[str, typing.Any], path: str, default: int) -> int:

	port = _get(section, path, int, default)

	if not 0 < port < 65536:
		raise ConfigError(f"'{path}' must be a port number, got {port}")

	return port


def load_config (config_path: str = "config.yaml") -> SessionConfig:

	"""
	Load configuration from a YAML file.

	A missing file is not an error: a warning is logged and the defaults are
	returned.

	Raises:
		ConfigError: When the file is not valid YAML or has bad values.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return SessionConfig()

	with open(config_path, "r") as f:
		try:
			data = yaml.safe_load(f)
		except yaml.YAMLError as exc:
			raise ConfigError(f"Could not parse {config_path}: {exc}") from exc

	return SessionConfig.from_mapping(data)
