"""Read-only snapshot of a user's onchain and social identity.

The fetch layer (wallet RPC, Farcaster, price feed) lives outside this
package and hands over a plain JSON-like mapping.  :meth:`UserDataVector.from_dict`
turns that mapping into immutable dataclasses.  Missing or malformed fields
become neutral defaults so that generation never fails because a feed was
down.
"""

import dataclasses
import datetime
import logging
import math
import sys
import typing


logger = logging.getLogger(__name__)


DEFI_TOKEN_PROTOCOLS: typing.Dict[str, str] = {
	"USDC": "Coinbase/Circle",
	"DAI": "MakerDAO",
	"USDT": "Tether",
	"WETH": "Wrapped Ethereum",
	"UNI": "Uniswap",
	"COMP": "Compound",
	"AAVE": "Aave",
	"CRV": "Curve",
	"BAL": "Balancer",
}


# Counts saturate here; every count below this converts to float exactly
COUNT_MAX = 2 ** 53


def _as_int (value: typing.Any) -> int:

	"""Coerce a count to a non-negative int up to COUNT_MAX, treating garbage as zero."""

	if isinstance(value, bool):
		return 0

	if isinstance(value, int):
		return max(0, min(value, COUNT_MAX))

	try:
		number = float(value)
	except (TypeError, ValueError):
		return 0
	except OverflowError:
		return COUNT_MAX if value > 0 else 0

	if not math.isfinite(number):
		return 0

	return max(0, min(int(number), COUNT_MAX))


def _as_float (value: typing.Any) -> float:

	"""Coerce a decimal (possibly a string such as ``"2.5"``) to a non-negative float."""

	if isinstance(value, bool):
		return 0.0

	try:
		number = float(value)
	except (TypeError, ValueError):
		return 0.0
	except OverflowError:
		return sys.float_info.max if value > 0 else 0.0

	if not math.isfinite(number):
		return 0.0

	return max(0.0, number)


def _as_optional_float (value: typing.Any) -> typing.Optional[float]:

	"""Return a positive float price, or ``None`` when the feed gave nothing usable."""

	if value is None:
		return None

	number = _as_float(value)

	return number if number > 0 else None


def _as_optional_str (value: typing.Any) -> typing.Optional[str]:

	return value if isinstance(value, str) and value else None


def _as_datetime (value: typing.Any) -> typing.Optional[datetime.datetime]:

	"""Parse an ISO-8601 string (or pass through a datetime)."""

	if isinstance(value, datetime.datetime):
		return value

	if not isinstance(value, str) or not value:
		return None

	try:
		return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
	except ValueError:
		logger.debug(f"Ignoring unparseable timestamp {value!r}")
		return None


def _as_str_tuple (value: typing.Any) -> typing.Tuple[str, ...]:

	if not isinstance(value, (list, tuple)):
		return ()

	return tuple(item for item in value if isinstance(item, str))


def _section (payload: typing.Mapping[str, typing.Any], key: str) -> typing.Mapping[str, typing.Any]:

	section = payload.get(key)

	return section if isinstance(section, dict) else {}


def classify_user_type (transaction_count: int, token_count: int) -> str:

	"""Bucket a wallet by how much it has done onchain."""

	if transaction_count > 1000 and token_count > 20:
		return "defi_veteran"
	if transaction_count > 500 and token_count > 10:
		return "advanced_user"
	if transaction_count > 100 and token_count > 5:
		return "active_trader"
	if transaction_count > 50 and token_count > 2:
		return "regular_user"
	if transaction_count > 10:
		return "casual_user"

	return "newcomer"


def classify_activity_level (transaction_count: int) -> str:

	"""Rough activity label from the transaction count alone."""

	if transaction_count > 200:
		return "very_active"
	if transaction_count > 50:
		return "active"
	if transaction_count > 10:
		return "casual"

	return "new"


def analyze_defi_protocols (token_symbols: typing.Iterable[str]) -> typing.Tuple[str, ...]:

	"""Map held token symbols to the DeFi protocols they imply, without duplicates."""

	protocols: typing.List[str] = []

	for symbol in token_symbols:
		protocol = DEFI_TOKEN_PROTOCOLS.get(symbol.upper())
		if protocol is not None and protocol not in protocols:
			protocols.append(protocol)

	return tuple(protocols)


@dataclasses.dataclass(frozen=True)
class WalletData:

	address: typing.Optional[str] = None
	balance: float = 0.0
	chain_id: typing.Optional[int] = None
	is_connected: bool = False


@dataclasses.dataclass(frozen=True)
class OnchainData:

	transaction_count: int = 0
	first_transaction_date: typing.Optional[datetime.datetime] = None
	last_activity_date: typing.Optional[datetime.datetime] = None
	token_count: int = 0
	nft_count: int = 0
	defi_protocols: typing.Tuple[str, ...] = ()
	user_type: str = "newcomer"
	activity_level: str = "new"


@dataclasses.dataclass(frozen=True)
class FarcasterData:

	fid: typing.Optional[int] = None
	username: typing.Optional[str] = None
	display_name: typing.Optional[str] = None
	pfp_url: typing.Optional[str] = None
	follower_count: int = 0
	following_count: int = 0
	verifications: typing.Tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class PriceData:

	"""Live prices in USD.  Either may be ``None`` when the feed failed."""

	eth: typing.Optional[float] = None
	btc: typing.Optional[float] = None
	fetched_at: typing.Optional[datetime.datetime] = None


@dataclasses.dataclass(frozen=True)
class ContextData:

	entry_point: typing.Optional[str] = None
	platform_type: typing.Optional[str] = None
	added: typing.Optional[bool] = None
	client_fid: typing.Optional[int] = None


@dataclasses.dataclass(frozen=True)
class UserDataVector:

	"""
	An immutable snapshot of everything the generators may read about a user.

	Attributes:
		wallet: Address, ETH balance and connection state.
		onchain: Transaction, token and NFT activity.
		farcaster: Social graph size and profile fields.
		prices: ETH/BTC spot prices (optional).
		context: How the user arrived (launcher, cast embed, ...).

	Example:
		```python
		user = basedrum.user_data.UserDataVector.from_dict({
			"wallet": {"address": "0xabc...", "balance": "2.5"},
			"onchain": {"transactionCount": 150},
		})
		user.onchain.transaction_count  # 150
		user.farcaster.follower_count   # 0 (absent -> default)
		```
	"""

	wallet: WalletData = dataclasses.field(default_factory=WalletData)
	onchain: OnchainData = dataclasses.field(default_factory=OnchainData)
	farcaster: FarcasterData = dataclasses.field(default_factory=FarcasterData)
	prices: PriceData = dataclasses.field(default_factory=PriceData)
	context: ContextData = dataclasses.field(default_factory=ContextData)

	@property
	def address (self) -> typing.Optional[str]:
		return self.wallet.address

	@classmethod
	def from_dict (cls, payload: typing.Mapping[str, typing.Any]) -> "UserDataVector":

		"""Build a snapshot from the fetch layer's camelCase JSON shape.

		Every field is optional.  Counts that are negative, non-numeric or
		non-finite are treated as zero; unparseable prices are treated as
		absent.  Derived labels (``userType``, ``activityLevel``) are computed
		when the payload does not carry them.

		Raises:
			TypeError: If ``payload`` is not a mapping at all.
		"""

		if not isinstance(payload, dict):
			raise TypeError(f"User data payload must be a mapping, got {type(payload).__name__}")

		wallet_raw = _section(payload, "wallet")
		onchain_raw = _section(payload, "onchain")
		farcaster_raw = _section(payload, "farcaster")
		prices_raw = _section(payload, "prices")
		context_raw = _section(payload, "context")

		address = _as_optional_str(wallet_raw.get("address"))
		chain_id = wallet_raw.get("chainId")

		wallet = WalletData(
			address = address,
			balance = _as_float(wallet_raw.get("balance", 0)),
			chain_id = chain_id if isinstance(chain_id, int) and not isinstance(chain_id, bool) else None,
			is_connected = bool(wallet_raw.get("isConnected", address is not None))
		)

		transaction_count = _as_int(onchain_raw.get("transactionCount", 0))
		token_count = _as_int(onchain_raw.get("tokenCount", 0))

		onchain = OnchainData(
			transaction_count = transaction_count,
			first_transaction_date = _as_datetime(onchain_raw.get("firstTransactionDate")),
			last_activity_date = _as_datetime(onchain_raw.get("lastActivityDate")),
			token_count = token_count,
			nft_count = _as_int(onchain_raw.get("nftCount", 0)),
			defi_protocols = _as_str_tuple(onchain_raw.get("defiProtocols")),
			user_type = _as_optional_str(onchain_raw.get("userType")) or classify_user_type(transaction_count, token_count),
			activity_level = _as_optional_str(onchain_raw.get("activityLevel")) or classify_activity_level(transaction_count)
		)

		fid = farcaster_raw.get("fid")

		farcaster = FarcasterData(
			fid = fid if isinstance(fid, int) and not isinstance(fid, bool) else None,
			username = _as_optional_str(farcaster_raw.get("username")),
			display_name = _as_optional_str(farcaster_raw.get("displayName")),
			pfp_url = _as_optional_str(farcaster_raw.get("pfpUrl")),
			follower_count = _as_int(farcaster_raw.get("followerCount", 0)),
			following_count = _as_int(farcaster_raw.get("followingCount", 0)),
			verifications = _as_str_tuple(farcaster_raw.get("verifications"))
		)

		prices = PriceData(
			eth = _as_optional_float(prices_raw.get("eth")),
			btc = _as_optional_float(prices_raw.get("btc")),
			fetched_at = _as_datetime(prices_raw.get("fetchedAt"))
		)

		added = context_raw.get("added")
		client_fid = context_raw.get("clientFid")

		context = ContextData(
			entry_point = _as_optional_str(context_raw.get("entryPoint")),
			platform_type = _as_optional_str(context_raw.get("platformType")),
			added = added if isinstance(added, bool) else None,
			client_fid = client_fid if isinstance(client_fid, int) and not isinstance(client_fid, bool) else None
		)

		return cls(wallet=wallet, onchain=onchain, farcaster=farcaster, prices=prices, context=context)
