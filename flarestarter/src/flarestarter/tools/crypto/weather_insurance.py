import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_abi import decode

from ...core.config import FlareStarterConfig, get_config
from ...core.exceptions import ContractNotFoundError, TransactionError
from ...core.types import TransactionResult
from ..base import FlareBaseTool, handle_command_errors
from .abis import (
    JSON_API_RESPONSE_TYPE,
    MIN_TEMP_AGENCY_ABI,
    WEATHER_ID_AGENCY_ABI,
    WEB2JSON_RESPONSE_TYPE,
)
from .artifacts import DeploymentStore
from .base import FlareTool
from .fdc_client import FdcClient
from .openweather_client import OpenWeatherClient, OpenWeatherConfig

logger = logging.getLogger(__name__)

COORDINATE_SCALE = 10 ** 6
DEFAULT_LATITUDE = 46.419402127862405
DEFAULT_LONGITUDE = 15.587079308221126
DEFAULT_PREMIUM = 10
DEFAULT_COVERAGE = 1000
START_DELAY_SECONDS = 30
POLICY_DURATION_SECONDS = 60 * 60

MIN_TEMP_JQ = """{
  latitude: (.coord.lat | if . != null then .*pow(10;6) else 0 end | floor),
  longitude: (.coord.lon | if . != null then .*pow(10;6) else 0 end | floor),
  description: .weather[0].description,
  temperature: (.main.temp | if . != null then .*pow(10;6) else 0 end | floor),
  minTemp: (.main.temp_min | if . != null then .*pow(10;6) else 0 end | floor),
  windSpeed: (.wind.speed | if . != null then . *pow(10;6) else 0 end | floor),
  windDeg: .wind.deg
  }"""

WEATHER_ID_JQ = """{
latitude: (.coord.lat | if . != null then .*pow(10;6) else null end),
longitude: (.coord.lon | if . != null then .*pow(10;6) else null end),
weatherId: .weather[0].id,
weatherMain: .weather[0].main,
description: .weather[0].description,
temperature: (.main.temp | if . != null then .*pow(10;6) else null end),
windSpeed: (.wind.speed | if . != null then . *pow(10;6) end),
windDeg: .wind.deg
}"""


def dto_abi_signature(fields: List[Tuple[str, str]], internal_type: Optional[str] = None) -> str:
    """ABI signature of the data transport struct the jq filter produces"""
    signature: Dict[str, Any] = {
        "components": [{"internalType": t, "name": n, "type": t} for n, t in fields],
        "name": "dto",
        "type": "tuple",
    }
    if internal_type:
        signature["internalType"] = internal_type
    return json.dumps(signature)


MIN_TEMP_DTO = [
    ("latitude", "int256"),
    ("longitude", "int256"),
    ("description", "string"),
    ("temperature", "int256"),
    ("minTemp", "int256"),
    ("windSpeed", "uint256"),
    ("windDeg", "uint256"),
]

WEATHER_ID_DTO = [
    ("latitude", "int256"),
    ("longitude", "int256"),
    ("weatherId", "uint256"),
    ("weatherMain", "string"),
    ("description", "string"),
    ("temperature", "uint256"),
    ("windSpeed", "uint256"),
    ("windDeg", "uint256"),
]


class PolicyStatus(IntEnum):
    UNCLAIMED = 0
    OPEN = 1
    SETTLED = 2


@dataclass
class AgencyKind:
    """One weather agency contract and the attestation flavour it resolves with"""
    name: str
    artifact_name: str
    abi: List[Dict[str, Any]]
    threshold_field: str
    default_threshold: int
    attestation_type: str
    source_id: str
    verifier_path: str
    response_type: str
    dto_fields: List[Tuple[str, str]] = field(default_factory=list)
    jq_filter: str = ""


class AgencyRegistry:
    def __init__(self):
        self.kinds: Dict[str, AgencyKind] = {
            "min_temp": AgencyKind(
                name="min_temp",
                artifact_name="MinTempAgency",
                abi=MIN_TEMP_AGENCY_ABI,
                threshold_field="minTempThreshold",
                default_threshold=30 * COORDINATE_SCALE,
                attestation_type="Web2Json",
                source_id="PublicWeb2",
                verifier_path="Web2Json/prepareRequest",
                response_type=WEB2JSON_RESPONSE_TYPE,
                dto_fields=MIN_TEMP_DTO,
                jq_filter=MIN_TEMP_JQ,
            ),
            "weather_id": AgencyKind(
                name="weather_id",
                artifact_name="WeatherIdAgency",
                abi=WEATHER_ID_AGENCY_ABI,
                threshold_field="weatherIdThreshold",
                default_threshold=800,
                attestation_type="IJsonApi",
                source_id="WEB2",
                verifier_path="JsonApi/prepareRequest",
                response_type=JSON_API_RESPONSE_TYPE,
                dto_fields=WEATHER_ID_DTO,
                jq_filter=WEATHER_ID_JQ,
            ),
        }

    def get(self, kind: str) -> AgencyKind:
        key = kind.lower().replace("-", "_")
        aliases = {"mintemp": "min_temp", "weatherid": "weather_id"}
        key = aliases.get(key, key)
        if key not in self.kinds:
            raise ValueError(f"Unknown agency {kind}. Use one of: {', '.join(self.kinds)}")
        return self.kinds[key]


@dataclass
class Policy:
    id: int
    holder: str
    latitude: int
    longitude: int
    start_timestamp: int
    expiration_timestamp: int
    threshold: int
    premium: int
    coverage: int
    status: int

    @property
    def status_name(self) -> str:
        try:
            return PolicyStatus(self.status).name
        except ValueError:
            return str(self.status)

    @property
    def coordinates(self) -> Tuple[float, float]:
        return self.latitude / COORDINATE_SCALE, self.longitude / COORDINATE_SCALE


def scale_coordinate(value: float) -> int:
    return int(round(value * COORDINATE_SCALE))


class WeatherInsuranceTool(FlareBaseTool):
    """Tool for parametric weather insurance resolved with FDC proofs"""

    name: str = "weather_insurance"
    description: str = """Weather insurance agencies. Available commands:
    - deploy <min_temp|weather_id>
    - create <min_temp|weather_id> [lat] [lon] [threshold]
    - policy <min_temp|weather_id> <id>
    - resolve <min_temp|weather_id> <id>
    - claim <min_temp|weather_id> <id>
    - expire <min_temp|weather_id> <id>
    - retire <min_temp|weather_id> <id>
    Example: 'create min_temp 46.42 15.59'"""

    flare: FlareTool = None
    settings: Any = None
    registry: AgencyRegistry = None
    deployments: DeploymentStore = None
    fdc: Any = None
    weather_client_factory: Any = None
    resolve_attempts: int = 30
    resolve_delay_seconds: float = 20

    def __init__(self, flare_tool: FlareTool, settings: Optional[FlareStarterConfig] = None,
                 fdc: Optional[FdcClient] = None,
                 weather_client_factory: Optional[Callable[[str], OpenWeatherClient]] = None):
        super().__init__()
        self.flare = flare_tool
        self.settings = settings or get_config()
        self.registry = AgencyRegistry()
        self.deployments = DeploymentStore(self.settings.deployments_file)
        self.fdc = fdc or FdcClient(flare_tool, self.settings)
        self.weather_client_factory = weather_client_factory or OpenWeatherClient
        self.resolve_attempts = self.settings.resolve_attempts
        self.resolve_delay_seconds = self.settings.base_delay

    @handle_command_errors("Insurance")
    async def _arun(self, command: str) -> str:
        """Execute insurance operation"""
        parts = command.split()
        if len(parts) < 2:
            return "Invalid command format. Use: <action> <min_temp|weather_id> [args]"
        action, kind = parts[0].lower(), parts[1]

        if action == "deploy":
            address = await self.deploy_agency(kind)
            return f"({self.flare.network.name}) {self.registry.get(kind).artifact_name} deployed to {address}"
        elif action == "create":
            lat = float(parts[2]) if len(parts) > 2 else DEFAULT_LATITUDE
            lon = float(parts[3]) if len(parts) > 3 else DEFAULT_LONGITUDE
            threshold = int(parts[4]) if len(parts) > 4 else None
            tx = await self.create_policy(kind, lat, lon, threshold=threshold)
            return f"Policy created. Transaction: {tx.hash}"

        if len(parts) < 3:
            return f"Invalid command format. Use: {action} {kind} <policy_id>"
        policy_id = int(parts[2])

        if action == "policy":
            policy = await self.get_policy(kind, policy_id)
            return (
                f"Policy {policy.id}: {policy.status_name}, coordinates {policy.coordinates}, "
                f"threshold {policy.threshold}, premium {policy.premium}, coverage {policy.coverage}, "
                f"valid {policy.start_timestamp}-{policy.expiration_timestamp}"
            )
        elif action == "resolve":
            tx = await self.resolve_policy(kind, policy_id)
            return f"Policy {policy_id} resolved. Transaction: {tx.hash}"
        elif action == "claim":
            tx = await self.claim_policy(kind, policy_id)
            return f"Policy {policy_id} claimed. Transaction: {tx.hash}"
        elif action == "expire":
            tx = await self.expire_policy(kind, policy_id)
            return f"Policy {policy_id} expired. Transaction: {tx.hash}"
        elif action == "retire":
            tx = await self.retire_unclaimed_policy(kind, policy_id)
            return f"Policy {policy_id} retired. Transaction: {tx.hash}"
        else:
            return f"Unknown action: {action}"

    def agency_address(self, kind: str) -> str:
        agency = self.registry.get(kind)
        return self.deployments.require(self.flare.network.name, agency.artifact_name)

    def get_agency(self, kind: str, address: Optional[str] = None) -> Any:
        agency = self.registry.get(kind)
        abi = self.flare.contract_abi(agency.artifact_name, agency.abi)
        return self.flare.get_contract(address or self.agency_address(kind), abi)

    async def deploy_agency(self, kind: str) -> str:
        agency = self.registry.get(kind)
        artifact = self.flare.load_artifact(agency.artifact_name)
        result = await self.flare.deploy_contract(artifact)
        self.deployments.set(self.flare.network.name, agency.artifact_name, result.contract_address)
        return result.contract_address

    async def create_policy(
        self,
        kind: str,
        latitude: float = DEFAULT_LATITUDE,
        longitude: float = DEFAULT_LONGITUDE,
        threshold: Optional[int] = None,
        premium: int = DEFAULT_PREMIUM,
        coverage: int = DEFAULT_COVERAGE,
        start_timestamp: Optional[int] = None,
    ) -> TransactionResult:
        """Register a policy at the nearest weather station, paying the premium"""
        agency = self.registry.get(kind)
        weather = self.weather_client_factory(self.settings.open_weather_api_key)
        coord = await asyncio.get_running_loop().run_in_executor(
            None, weather.get_station_coordinates, latitude, longitude
        )
        logger.info(f"Weather station coordinates: {coord}")

        start = start_timestamp or int(time.time()) + START_DELAY_SECONDS
        expiration = start + POLICY_DURATION_SECONDS
        threshold = agency.default_threshold if threshold is None else threshold

        contract = self.get_agency(kind)
        fn = contract.functions.createPolicy(
            scale_coordinate(coord["lat"]),
            scale_coordinate(coord["lon"]),
            start,
            expiration,
            threshold,
            coverage,
        )
        return await self.flare.send_transaction(fn, value=premium, operation=f"{agency.name}_create_policy")

    async def get_policy(self, kind: str, policy_id: int) -> Policy:
        contract = self.get_agency(kind)
        raw = await self.flare.call(contract.functions.registeredPolicies(policy_id))
        (holder, latitude, longitude, start, expiration,
         threshold, premium, coverage, status, pid) = raw
        return Policy(
            id=pid,
            holder=holder,
            latitude=latitude,
            longitude=longitude,
            start_timestamp=start,
            expiration_timestamp=expiration,
            threshold=threshold,
            premium=premium,
            coverage=coverage,
            status=status,
        )

    def build_request_body(self, kind: str, policy: Policy) -> Dict[str, Any]:
        """Verifier request body querying OpenWeather at the policy coordinates"""
        agency = self.registry.get(kind)
        latitude, longitude = policy.coordinates
        weather_config = OpenWeatherConfig()
        query = {
            "lat": latitude,
            "lon": longitude,
            "units": weather_config.UNITS,
            "appid": self.settings.open_weather_api_key,
        }

        if agency.attestation_type == "Web2Json":
            return {
                "url": weather_config.API_URL,
                "httpMethod": "GET",
                "headers": json.dumps({"Content-Type": "application/json"}),
                "queryParams": json.dumps(query),
                "body": "{}",
                "postProcessJq": agency.jq_filter,
                "abiSignature": dto_abi_signature(agency.dto_fields, "struct DataTransportObject"),
            }

        url = (
            f"{weather_config.API_URL}?lat={latitude}&lon={longitude}"
            f"&units={weather_config.UNITS}&appid={self.settings.open_weather_api_key}"
        )
        return {
            "url": url,
            "postprocessJq": agency.jq_filter,
            "abi_signature": dto_abi_signature(agency.dto_fields),
        }

    def _verifier(self, agency: AgencyKind) -> Tuple[str, str]:
        if agency.attestation_type == "Web2Json":
            base, key = self.settings.web2json_verifier_url, self.settings.verifier_api_key
        else:
            base, key = self.settings.jq_verifier_url, self.settings.jq_verifier_api_key
        if not base.endswith("/"):
            base += "/"
        return f"{base}{agency.verifier_path}", key

    @staticmethod
    def decode_proof(agency: AgencyKind, proof: Dict[str, Any]) -> Tuple[List[bytes], Tuple]:
        """Turn the DA layer response into the (merkleProof, data) struct resolvePolicy takes"""
        response_hex = proof["response_hex"]
        raw = bytes.fromhex(response_hex[2:] if response_hex.startswith("0x") else response_hex)
        (data,) = decode([agency.response_type], raw)
        merkle_proof = [bytes.fromhex(p[2:] if p.startswith("0x") else p) for p in proof.get("proof", [])]
        return merkle_proof, data

    async def resolve_policy(self, kind: str, policy_id: int) -> TransactionResult:
        """Attest the weather at the policy location and submit the proof"""
        agency = self.registry.get(kind)
        policy = await self.get_policy(kind, policy_id)
        logger.info(f"Resolving policy {policy.id} ({policy.status_name}) at {policy.coordinates}")

        url, api_key = self._verifier(agency)
        prepared = await self.fdc.prepare_attestation_request(
            url, api_key, agency.attestation_type, agency.source_id, self.build_request_body(kind, policy)
        )
        abi_encoded_request = prepared["abiEncodedRequest"]

        round_id = await self.fdc.submit_attestation_request(abi_encoded_request)
        if agency.attestation_type == "Web2Json":
            proof = await self.fdc.retrieve_data_and_proof_with_retry(
                self.fdc.proof_url(), abi_encoded_request, round_id
            )
        else:
            proof = await self.fdc.retrieve_data_and_proof(self.fdc.proof_url(), abi_encoded_request, round_id)

        proof_struct = self.decode_proof(agency, proof)
        contract = self.get_agency(kind)

        last_error: Optional[Exception] = None
        for attempt in range(self.resolve_attempts):
            try:
                return await self.flare.send_transaction(
                    contract.functions.resolvePolicy(policy_id, proof_struct),
                    operation=f"{agency.name}_resolve_policy",
                )
            except TransactionError as e:
                last_error = e
                logger.warning(f"resolvePolicy failed (attempt {attempt + 1}): {str(e)}")
                await self.flare.sleep(self.resolve_delay_seconds)
        raise TransactionError(f"Could not resolve policy {policy_id}: {str(last_error)}")

    async def claim_policy(self, kind: str, policy_id: int) -> TransactionResult:
        """Accept a policy as insurer by depositing its coverage"""
        policy = await self.get_policy(kind, policy_id)
        contract = self.get_agency(kind)
        return await self.flare.send_transaction(
            contract.functions.claimPolicy(policy_id), value=policy.coverage, operation="claim_policy"
        )

    async def expire_policy(self, kind: str, policy_id: int) -> TransactionResult:
        contract = self.get_agency(kind)
        return await self.flare.send_transaction(contract.functions.expirePolicy(policy_id), operation="expire_policy")

    async def retire_unclaimed_policy(self, kind: str, policy_id: int) -> TransactionResult:
        contract = self.get_agency(kind)
        return await self.flare.send_transaction(
            contract.functions.retireUnclaimedPolicy(policy_id), operation="retire_unclaimed_policy"
        )
