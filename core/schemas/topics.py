# CENTRALIZED topic names and MCP service/tool names
# Route by name only; no string literals for these at call sites


class TopicNames:
    """Order bus topics"""

    ORDERS_REQUESTED = "orders.requested"
    ORDERS_CONTROL = "orders.control"


class PartitioningKeys:
    """Standardized partitioning key generation for ordering guarantees"""

    @staticmethod
    def order_key(symbol: str, action: str) -> str:
        """Orders for the same symbol stay ordered per side"""
        return f"{symbol}:{action}"

    @staticmethod
    def control_key() -> str:
        return "trading_control"


class ServiceNames:
    """Services reachable through the MCP host"""

    MARKET_DATA = "market-data"
    SENTIMENT = "nlp-sentiment"
    RISK_ENGINE = "risk-engine"
    CONFIG = "config"


class ToolNames:
    """Operations invoked on MCP services"""

    GET_OHLCV = "market-data.get_ohlcv"
    ANALYZE_SENTIMENT = "nlp-sentiment.analyze"
    ASSESS_SYMBOL = "risk-engine.assess_symbol"
    PRETRADE_CHECK = "risk-engine.pretrade_check"
    CONFIG_SET = "config.set"

    # Exposed by this agent
    COMMAND_PROCESS = "command-agent.process"
