"""Chain ids, sentinel addresses and well-known contract addresses."""

MAINNET = 1
FANTOM = 250
ARBITRUM = 42161
LOCAL_FORK = 1337

# Sentinel used by routers and wallets for the native chain asset
ETH_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

MAX_UINT256 = 2**256 - 1

# Router gas tiers are quoted in gwei
GWEI = 10**9

# The price oracle reports USDC prices with 6 decimals
USDC_PRICE_DECIMALS = 6

DEFAULT_NUMERAIRES: dict[int, str] = {
    MAINNET: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    LOCAL_FORK: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    FANTOM: "0x04068DA6C83AFCFA0e13ba15A6696662335D5B75",
    ARBITRUM: "0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8",
}

DEFAULT_ORACLES: dict[int, str] = {
    MAINNET: "0x83d95e0D5f402511dB06817Aff3f9eA88224B030",
    LOCAL_FORK: "0x83d95e0D5f402511dB06817Aff3f9eA88224B030",
    FANTOM: "0x57AA88A0810dfe3f9b71a9b179Dd8bF5F956C46A",
    ARBITRUM: "0x043518AB266485dC085a1DB095B8d9C2Fc78E9b9",
}

# Network slugs understood by the liquidity router API
ROUTER_NETWORKS: dict[int, str] = {
    MAINNET: "ethereum",
    LOCAL_FORK: "ethereum",
    FANTOM: "fantom",
    ARBITRUM: "arbitrum",
}
