"""TradeStation Position / Balance Accessor."""

import logging

from src.logging_config import OperationContext
from src.tradestation.config import TradeStationConfig
from src.tradestation.models import AccountBalances, Position
from src.tradestation.parsing import parse_balances, parse_positions
from src.tradestation.session import AuthorizedSession

logger = logging.getLogger(__name__)


class AccountAccessor:
    """Reads positions and balances of the configured account."""

    def __init__(self, config: TradeStationConfig, session: AuthorizedSession):
        self._config = config
        self._session = session

    async def get_positions(self) -> list[Position]:
        with OperationContext(operation="get_positions", account_id=self._config.account_id):
            data = await self._session.get_json(self._config.positions_url)
            positions = parse_positions(data)
            logger.debug(f"Loaded {len(positions)} positions")
            return positions

    async def get_balances(self) -> AccountBalances:
        with OperationContext(operation="get_balances", account_id=self._config.account_id):
            data = await self._session.get_json(self._config.balances_url)
            return parse_balances(data)
