"""Minimal contract ABIs used when no Hardhat artifact is available.

Only the functions and events the tools call are listed. Deployed contracts
whose artifacts are present on disk use the artifact ABI instead.
"""

from typing import Any, Dict, List, Sequence, Tuple, Union

Param = Union[Tuple[str, str], Tuple[str, str, Sequence]]


def _param(spec: Param, indexed: bool = None) -> Dict[str, Any]:
    name, type_ = spec[0], spec[1]
    entry: Dict[str, Any] = {"name": name, "type": type_}
    if len(spec) > 2:
        entry["components"] = [_param(c) for c in spec[2]]
    if indexed is not None:
        entry["indexed"] = indexed
    return entry


def fn(name: str, inputs: Sequence[Param] = (), outputs: Sequence[Param] = (),
       mutability: str = "view") -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [_param(p) for p in inputs],
        "outputs": [_param(p) for p in outputs],
        "stateMutability": mutability,
    }


def event(name: str, inputs: Sequence[Param], indexed: Sequence[str] = ()) -> Dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [_param(p, indexed=p[0] in indexed) for p in inputs],
    }


SEND_PARAM: Param = ("_sendParam", "tuple", [
    ("dstEid", "uint32"),
    ("to", "bytes32"),
    ("amountLD", "uint256"),
    ("minAmountLD", "uint256"),
    ("extraOptions", "bytes"),
    ("composeMsg", "bytes"),
    ("oftCmd", "bytes"),
])
MESSAGING_FEE: Param = ("_fee", "tuple", [("nativeFee", "uint256"), ("lzTokenFee", "uint256")])

ERC20_ABI: List[Dict[str, Any]] = [
    fn("name", outputs=[("", "string")]),
    fn("symbol", outputs=[("", "string")]),
    fn("decimals", outputs=[("", "uint8")]),
    fn("totalSupply", outputs=[("", "uint256")]),
    fn("balanceOf", [("account", "address")], [("", "uint256")]),
    fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")]),
    fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
    fn("transfer", [("to", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
]

OFT_ABI: List[Dict[str, Any]] = ERC20_ABI + [
    fn("peers", [("eid", "uint32")], [("", "bytes32")]),
    fn("token", outputs=[("", "address")]),
    fn("endpoint", outputs=[("", "address")]),
    fn("approvalRequired", outputs=[("", "bool")]),
    fn("quoteSend", [SEND_PARAM, ("_payInLzToken", "bool")],
       [("msgFee", "tuple", [("nativeFee", "uint256"), ("lzTokenFee", "uint256")])]),
    fn("send", [SEND_PARAM, MESSAGING_FEE, ("_refundAddress", "address")], [
        ("msgReceipt", "tuple", [
            ("guid", "bytes32"),
            ("nonce", "uint64"),
            ("fee", "tuple", [("nativeFee", "uint256"), ("lzTokenFee", "uint256")]),
        ]),
        ("oftReceipt", "tuple", [("amountSentLD", "uint256"), ("amountReceivedLD", "uint256")]),
    ], "payable"),
]

FLARE_CONTRACT_REGISTRY_ABI = [
    fn("getContractAddressByName", [("_name", "string")], [("", "address")]),
]

FTSO_V2_ABI = [
    fn("getFeedById", [("_feedId", "bytes21")],
       [("value", "uint256"), ("decimals", "int8"), ("timestamp", "uint64")], "payable"),
]

FDC_HUB_ABI = [
    fn("requestAttestation", [("_data", "bytes")], [], "payable"),
]

FDC_FEE_CONFIGURATIONS_ABI = [
    fn("getRequestFee", [("_data", "bytes")], [("", "uint256")]),
]

FLARE_SYSTEMS_MANAGER_ABI = [
    fn("firstVotingRoundStartTs", outputs=[("", "uint64")]),
    fn("votingEpochDurationSeconds", outputs=[("", "uint64")]),
    fn("getCurrentVotingEpochId", outputs=[("", "uint32")]),
]

RELAY_ABI = [
    fn("isFinalized", [("_protocolId", "uint256"), ("_votingRoundId", "uint256")], [("", "bool")]),
]

REDEMPTION_REQUESTED_INPUTS: List[Param] = [
    ("agentVault", "address"),
    ("redeemer", "address"),
    ("requestId", "uint256"),
    ("paymentAddress", "string"),
    ("valueUBA", "uint256"),
    ("feeUBA", "uint256"),
    ("firstUnderlyingBlock", "uint256"),
    ("lastUnderlyingBlock", "uint256"),
    ("lastUnderlyingTimestamp", "uint256"),
    ("paymentReference", "bytes32"),
    ("executor", "address"),
    ("executorFeeNatWei", "uint256"),
]

ASSET_MANAGER_ABI = [
    fn("fAsset", outputs=[("", "address")]),
    fn("lotSize", outputs=[("_lotSizeUBA", "uint256")]),
    fn("assetMintingDecimals", outputs=[("", "uint256")]),
    fn("redeem", [
        ("_lots", "uint256"),
        ("_redeemerUnderlyingAddressString", "string"),
        ("_executor", "address"),
    ], [("_redeemedAmountUBA", "uint256")], "payable"),
    event("RedemptionRequested", REDEMPTION_REQUESTED_INPUTS, indexed=["agentVault", "redeemer", "requestId"]),
]

CHAINLINK_ADAPTER_ABI = [
    fn("decimals", outputs=[("", "uint8")]),
    fn("description", outputs=[("", "string")]),
    fn("latestRoundData", outputs=[
        ("roundId", "uint80"),
        ("answer", "int256"),
        ("startedAt", "uint256"),
        ("updatedAt", "uint256"),
        ("answeredInRound", "uint80"),
    ]),
    fn("refresh", mutability="nonpayable"),
    event("Refreshed", [("feedId", "bytes21"), ("scaledAnswer", "int256"), ("ftsoTimestamp", "uint64")],
          indexed=["feedId"]),
]

PYTH_ADAPTER_ABI = [
    fn("getPriceNoOlderThan", [("id", "bytes32"), ("age", "uint256")], [
        ("price", "tuple", [
            ("price", "int64"),
            ("conf", "uint64"),
            ("expo", "int32"),
            ("publishTime", "uint256"),
        ]),
    ]),
    fn("refresh", mutability="nonpayable"),
    event("Refreshed", [
        ("feedId", "bytes21"),
        ("priceId", "bytes32"),
        ("price", "int64"),
        ("expo", "int32"),
        ("publishTime", "uint256"),
    ], indexed=["feedId", "priceId"]),
]

API3_ADAPTER_ABI = [
    fn("read", outputs=[("value", "int224"), ("timestamp", "uint32")]),
    fn("refresh", mutability="nonpayable"),
    event("Refreshed", [("feedId", "bytes21"), ("scaledValue", "int224"), ("timestamp", "uint32")],
          indexed=["feedId"]),
]

BORING_VAULT_ABI = ERC20_ABI + [
    fn("owner", outputs=[("", "address")]),
    fn("authority", outputs=[("", "address")]),
]

TELLER_ABI = [
    fn("isPaused", outputs=[("", "bool")]),
    fn("shareUnlockTime", [("user", "address")], [("", "uint256")]),
    fn("deposit", [("depositAsset", "address"), ("depositAmount", "uint256"), ("minimumMint", "uint256")],
       [("shares", "uint256")], "payable"),
    fn("bulkWithdraw", [
        ("withdrawAsset", "address"),
        ("shareAmount", "uint256"),
        ("minimumAssets", "uint256"),
        ("to", "address"),
    ], [("assetsOut", "uint256")], "nonpayable"),
]

ACCOUNTANT_ABI = [
    fn("base", outputs=[("", "address")]),
    fn("getRate", outputs=[("rate", "uint256")]),
    fn("getRateInQuote", [("quote", "address")], [("rateInQuote", "uint256")]),
]

WEB2JSON_PROOF: Param = ("_proof", "tuple", [
    ("merkleProof", "bytes32[]"),
    ("data", "tuple", [
        ("attestationType", "bytes32"),
        ("sourceId", "bytes32"),
        ("votingRound", "uint64"),
        ("lowestUsedTimestamp", "uint64"),
        ("requestBody", "tuple", [
            ("url", "string"),
            ("httpMethod", "string"),
            ("headers", "string"),
            ("queryParams", "string"),
            ("body", "string"),
            ("postProcessJq", "string"),
            ("abiSignature", "string"),
        ]),
        ("responseBody", "tuple", [("abiEncodedData", "bytes")]),
    ]),
])

# ABI type string of IWeb2Json.Response, used to decode DA layer response_hex
WEB2JSON_RESPONSE_TYPE = (
    "(bytes32,bytes32,uint64,uint64,"
    "(string,string,string,string,string,string,string),"
    "(bytes))"
)


JSON_API_PROOF: Param = ("_proof", "tuple", [
    ("merkleProof", "bytes32[]"),
    ("data", "tuple", [
        ("attestationType", "bytes32"),
        ("sourceId", "bytes32"),
        ("votingRound", "uint64"),
        ("lowestUsedTimestamp", "uint64"),
        ("requestBody", "tuple", [
            ("url", "string"),
            ("postprocessJq", "string"),
            ("abi_signature", "string"),
        ]),
        ("responseBody", "tuple", [("abi_encoded_data", "bytes")]),
    ]),
])

# ABI type string of the legacy IJsonApi.Response
JSON_API_RESPONSE_TYPE = "(bytes32,bytes32,uint64,uint64,(string,string,string),(bytes))"


def weather_agency_abi(threshold_field: str, proof: Param = WEB2JSON_PROOF) -> List[Dict[str, Any]]:
    """ABI shared by MinTempAgency and WeatherIdAgency"""
    threshold_type = "int256" if threshold_field == "minTempThreshold" else "uint256"
    return [
        fn("createPolicy", [
            ("latitude", "int256"),
            ("longitude", "int256"),
            ("startTimestamp", "uint256"),
            ("expirationTimestamp", "uint256"),
            (threshold_field, threshold_type),
            ("coverage", "uint256"),
        ], [], "payable"),
        fn("registeredPolicies", [("", "uint256")], [
            ("holder", "address"),
            ("latitude", "int256"),
            ("longitude", "int256"),
            ("startTimestamp", "uint256"),
            ("expirationTimestamp", "uint256"),
            (threshold_field, threshold_type),
            ("premium", "uint256"),
            ("coverage", "uint256"),
            ("status", "uint8"),
            ("id", "uint256"),
        ]),
        fn("resolvePolicy", [("id", "uint256"), proof], [], "nonpayable"),
        fn("claimPolicy", [("id", "uint256")], [], "payable"),
        fn("expirePolicy", [("id", "uint256")], [], "nonpayable"),
        fn("retireUnclaimedPolicy", [("id", "uint256")], [], "nonpayable"),
    ]


MIN_TEMP_AGENCY_ABI = weather_agency_abi("minTempThreshold")
WEATHER_ID_AGENCY_ABI = weather_agency_abi("weatherIdThreshold", JSON_API_PROOF)

AUTHORIZATION_FIELDS: List[Param] = [
    ("from", "address"),
    ("to", "address"),
    ("token", "address"),
    ("value", "uint256"),
    ("validAfter", "uint256"),
    ("validBefore", "uint256"),
    ("nonce", "bytes32"),
    ("v", "uint8"),
    ("r", "bytes32"),
    ("s", "bytes32"),
]

X402_FACILITATOR_ABI = [
    fn("verifyPayment", [("auth", "tuple", AUTHORIZATION_FIELDS)],
       [("paymentId", "bytes32"), ("valid", "bool")]),
    fn("settlePayment", [("auth", "tuple", AUTHORIZATION_FIELDS)], [("paymentId", "bytes32")], "nonpayable"),
    fn("addSupportedToken", [("token", "address")], [], "nonpayable"),
    fn("supportedTokens", [("token", "address")], [("", "bool")]),
    fn("feeBps", outputs=[("", "uint256")]),
]

EIP3009_TOKEN_ABI = ERC20_ABI + [
    fn("mint", [("to", "address"), ("amount", "uint256")], [], "nonpayable"),
    fn("authorizationState", [("authorizer", "address"), ("nonce", "bytes32")], [("", "bool")]),
    fn("transferWithAuthorization", [
        ("from", "address"),
        ("to", "address"),
        ("value", "uint256"),
        ("validAfter", "uint256"),
        ("validBefore", "uint256"),
        ("nonce", "bytes32"),
        ("signature", "bytes"),
    ], [], "nonpayable"),
]
