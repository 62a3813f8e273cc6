"""Minimal ABIs for the contracts the simulator and reader touch."""


def _fn(
    name: str,
    inputs: list[tuple[str, str]],
    outputs: list[str],
    mutability: str = "view",
) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


def _tuple_input(name: str, fields: list[tuple[str, str]]) -> dict:
    return {
        "name": name,
        "type": "tuple",
        "components": [{"name": n, "type": t} for n, t in fields],
    }


ERC20_ABI = [
    _fn("name", [], ["string"]),
    _fn("symbol", [], ["string"]),
    _fn("decimals", [], ["uint8"]),
    _fn("totalSupply", [], ["uint256"]),
    _fn("balanceOf", [("owner", "address")], ["uint256"]),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], ["bool"], "nonpayable"),
    _fn("transfer", [("to", "address"), ("amount", "uint256")], ["bool"], "nonpayable"),
]

UNISWAP_V2_PAIR_ABI = [
    _fn("getReserves", [], ["uint112", "uint112", "uint32"]),
    _fn("token0", [], ["address"]),
    _fn("token1", [], ["address"]),
    _fn("totalSupply", [], ["uint256"]),
]

UNISWAP_V2_ROUTER_ABI = [
    _fn("getAmountsOut", [("amountIn", "uint256"), ("path", "address[]")], ["uint256[]"]),
    _fn(
        "swapExactETHForTokensSupportingFeeOnTransferTokens",
        [("amountOutMin", "uint256"), ("path", "address[]"), ("to", "address"), ("deadline", "uint256")],
        [],
        "payable",
    ),
    _fn(
        "swapExactTokensForETHSupportingFeeOnTransferTokens",
        [
            ("amountIn", "uint256"),
            ("amountOutMin", "uint256"),
            ("path", "address[]"),
            ("to", "address"),
            ("deadline", "uint256"),
        ],
        [],
        "nonpayable",
    ),
]

UNISWAP_V3_POOL_ABI = [
    _fn("liquidity", [], ["uint128"]),
]

_EXACT_INPUT_SINGLE = _tuple_input(
    "params",
    [
        ("tokenIn", "address"),
        ("tokenOut", "address"),
        ("fee", "uint24"),
        ("recipient", "address"),
        ("amountIn", "uint256"),
        ("amountOutMinimum", "uint256"),
        ("sqrtPriceLimitX96", "uint160"),
    ],
)

SWAP_ROUTER02_ABI = [
    {
        "type": "function",
        "name": "exactInputSingle",
        "stateMutability": "payable",
        "inputs": [_EXACT_INPUT_SINGLE],
        "outputs": [{"name": "amountOut", "type": "uint256"}],
    },
]

_QUOTE_EXACT_INPUT_SINGLE = _tuple_input(
    "params",
    [
        ("tokenIn", "address"),
        ("tokenOut", "address"),
        ("amountIn", "uint256"),
        ("fee", "uint24"),
        ("sqrtPriceLimitX96", "uint160"),
    ],
)

# QuoterV2 is nonpayable but meant to be eth_call'ed
QUOTER_V2_ABI = [
    {
        "type": "function",
        "name": "quoteExactInputSingle",
        "stateMutability": "nonpayable",
        "inputs": [_QUOTE_EXACT_INPUT_SINGLE],
        "outputs": [
            {"name": "amountOut", "type": "uint256"},
            {"name": "sqrtPriceX96After", "type": "uint160"},
            {"name": "initializedTicksCrossed", "type": "uint32"},
            {"name": "gasEstimate", "type": "uint256"},
        ],
    },
]
