"""Minimal contract ABIs used for read-only calls."""

ERC20_ABI = [
    {"inputs": [], "name": "symbol", "outputs": [{"internalType": "string", "name": "", "type": "string"}],
     "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
     "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "name", "outputs": [{"internalType": "string", "name": "", "type": "string"}],
     "stateMutability": "view", "type": "function"},
]

# Uniswap V3 QuoterV2 (Sushi V3 deploys the same interface)
QUOTER_V2_ABI = [
    {"inputs": [{"components": [
        {"internalType": "address", "name": "tokenIn", "type": "address"},
        {"internalType": "address", "name": "tokenOut", "type": "address"},
        {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
        {"internalType": "uint24", "name": "fee", "type": "uint24"},
        {"internalType": "uint160", "name": "sqrtPriceLimitX96", "type": "uint160"}],
        "internalType": "struct IQuoterV2.QuoteExactInputSingleParams", "name": "params", "type": "tuple"}],
     "name": "quoteExactInputSingle",
     "outputs": [
         {"internalType": "uint256", "name": "amountOut", "type": "uint256"},
         {"internalType": "uint160", "name": "sqrtPriceX96After", "type": "uint160"},
         {"internalType": "uint32", "name": "initializedTicksCrossed", "type": "uint32"},
         {"internalType": "uint256", "name": "gasEstimate", "type": "uint256"}],
     "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [
        {"internalType": "bytes", "name": "path", "type": "bytes"},
        {"internalType": "uint256", "name": "amountIn", "type": "uint256"}],
     "name": "quoteExactInput",
     "outputs": [
         {"internalType": "uint256", "name": "amountOut", "type": "uint256"},
         {"internalType": "uint160[]", "name": "sqrtPriceX96AfterList", "type": "uint160[]"},
         {"internalType": "uint32[]", "name": "initializedTicksCrossedList", "type": "uint32[]"},
         {"internalType": "uint256", "name": "gasEstimate", "type": "uint256"}],
     "stateMutability": "nonpayable", "type": "function"},
]

CHAINLINK_AGGREGATOR_ABI = [
    {"inputs": [], "name": "decimals", "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
     "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "latestRoundData", "outputs": [
        {"internalType": "uint80", "name": "roundId", "type": "uint80"},
        {"internalType": "int256", "name": "answer", "type": "int256"},
        {"internalType": "uint256", "name": "startedAt", "type": "uint256"},
        {"internalType": "uint256", "name": "updatedAt", "type": "uint256"},
        {"internalType": "uint80", "name": "answeredInRound", "type": "uint80"}],
     "stateMutability": "view", "type": "function"},
]
