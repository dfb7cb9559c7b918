"""Flare Data Connector request/proof round trip

1. POST the request body to a verifier's prepareRequest endpoint
2. Pay the request fee to FdcHub.requestAttestation
3. Derive the voting round from the block timestamp
4. Wait for Relay to finalize the round, then poll the DA layer for the proof
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Union

import aiohttp

from ...core.config import FlareStarterConfig, get_config
from ...core.exceptions import AttestationError
from .abis import (
    FDC_FEE_CONFIGURATIONS_ABI,
    FDC_HUB_ABI,
    FLARE_SYSTEMS_MANAGER_ABI,
    RELAY_ABI,
)
from .base import FlareTool
from .contract_registry import FlareContractRegistry

logger = logging.getLogger(__name__)

FDC_PROTOCOL_ID = 200
PROOF_PATH = "api/v1/fdc/proof-by-request-round-raw"


def to_utf8_hex_string(data: str) -> str:
    """Hex of each character code, right-padded with zeros to 32 bytes"""
    return "0x" + "".join(format(ord(c), "x") for c in data).ljust(64, "0")


def calculate_round_id(block_timestamp: int, first_voting_round_start_ts: int,
                       voting_epoch_duration_seconds: int) -> int:
    return (block_timestamp - first_voting_round_start_ts) // voting_epoch_duration_seconds


class FdcClient:
    """Client for FDC attestation requests and DA layer proofs"""

    finalization_poll_seconds: float = 30
    da_initial_delay_seconds: float = 10
    da_poll_seconds: float = 10
    def __init__(self, flare: FlareTool, settings: Optional[FlareStarterConfig] = None,
                 registry: Optional[FlareContractRegistry] = None):
        self.flare = flare
        self.settings = settings or get_config()
        self._registry = registry

    @property
    def registry(self) -> FlareContractRegistry:
        if self._registry is None:
            self._registry = FlareContractRegistry(self.flare)
        return self._registry

    def proof_url(self, da_layer_url: Optional[str] = None) -> str:
        base = da_layer_url or self.settings.da_layer_url
        if not base.endswith("/"):
            base += "/"
        return f"{base}{PROOF_PATH}"

    def round_explorer_url(self, round_id: int) -> str:
        base = self.flare.network.systems_explorer_url or f"https://{self.flare.network.name}-systems-explorer.flare.rocks"
        return f"{base}/voting-epoch/{round_id}?tab=fdc"

    async def prepare_attestation_request(self, url: str, api_key: str, attestation_type: str,
                                          source_id: str, request_body: Dict[str, Any]) -> Dict[str, Any]:
        """POST to the verifier; a non-200 status raises AttestationError"""
        request = {
            "attestationType": to_utf8_hex_string(attestation_type),
            "sourceId": to_utf8_hex_string(source_id),
            "requestBody": request_body,
        }
        logger.info(f"Preparing {attestation_type} request at {url}")
        logger.debug(f"Prepared request: {request}")

        headers = {"X-API-KEY": api_key, "Content-Type": "application/json"}
        async with aiohttp.ClientSession() as session:
            async with session.post(url, data=json.dumps(request), headers=headers) as response:
                if response.status != 200:
                    raise AttestationError(
                        f"Response status is not OK, status {response.status} {response.reason}",
                        status=response.status,
                    )
                data = await response.json(content_type=None)

        if data.get("status") not in (None, "VALID"):
            raise AttestationError(f"Verifier rejected request: {data.get('status')}")
        return data

    async def get_request_fee(self, abi_encoded_request: Union[str, bytes]) -> int:
        fee_config = await self.registry.get_contract("FdcRequestFeeConfigurations", FDC_FEE_CONFIGURATIONS_ABI)
        return await self.flare.call(fee_config.functions.getRequestFee(abi_encoded_request))

    async def submit_attestation_request(self, abi_encoded_request: Union[str, bytes]) -> int:
        """Pay the fee, submit to FdcHub and return the voting round id"""
        fdc_hub = await self.registry.get_contract("FdcHub", FDC_HUB_ABI)
        fee = await self.get_request_fee(abi_encoded_request)
        tx = await self.flare.send_transaction(
            fdc_hub.functions.requestAttestation(abi_encoded_request),
            value=fee,
            operation="fdc_request_attestation",
        )
        logger.info(f"Submitted request: {tx.hash}")

        round_id = await self.round_id_for_block(tx.block_number)
        logger.info(f"Check round progress at: {self.round_explorer_url(round_id)}")
        return round_id

    async def round_id_for_block(self, block_number: Any) -> int:
        block_timestamp = await self.flare.get_block_timestamp(block_number)
        manager = await self.registry.get_contract("FlareSystemsManager", FLARE_SYSTEMS_MANAGER_ABI)
        first_ts = await self.flare.call(manager.functions.firstVotingRoundStartTs())
        duration = await self.flare.call(manager.functions.votingEpochDurationSeconds())

        round_id = calculate_round_id(block_timestamp, first_ts, duration)
        current = await self.flare.call(manager.functions.getCurrentVotingEpochId())
        logger.info(f"Calculated round id: {round_id} (current voting epoch {current})")
        return round_id

    async def is_round_finalized(self, round_id: int) -> bool:
        relay = await self.registry.get_contract("Relay", RELAY_ABI)
        return await self.flare.call(relay.functions.isFinalized(FDC_PROTOCOL_ID, round_id))

    async def post_request_to_da_layer(self, url: str, request: Dict[str, Any],
                                       watch_status: bool = False) -> Dict[str, Any]:
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=request) as response:
                if watch_status and response.status != 200:
                    raise AttestationError(
                        f"Response status is not OK, status {response.status} {response.reason}",
                        status=response.status,
                    )
                return await response.json(content_type=None)

    async def retrieve_data_and_proof(self, url: str, abi_encoded_request: str,
                                      round_id: int) -> Dict[str, Any]:
        """Wait for round finalization, then poll the DA layer until response_hex is present"""
        logger.info("Waiting for the round to finalize...")
        while not await self.is_round_finalized(round_id):
            await asyncio.sleep(self.finalization_poll_seconds)
        logger.info("Round finalized")

        request = {"votingRoundId": round_id, "requestBytes": abi_encoded_request}
        await asyncio.sleep(self.da_initial_delay_seconds)
        proof = await self.post_request_to_da_layer(url, request, watch_status=True)

        logger.info("Waiting for the DA Layer to generate the proof...")
        while proof.get("response_hex") is None:
            await asyncio.sleep(self.da_poll_seconds)
            proof = await self.post_request_to_da_layer(url, request)

        logger.info("Proof generated")
        return proof

    async def retrieve_data_and_proof_with_retry(self, url: str, abi_encoded_request: str,
                                                 round_id: int, attempts: Optional[int] = None) -> Dict[str, Any]:
        attempts = attempts or self.settings.max_retries
        for attempt in range(attempts):
            try:
                return await self.retrieve_data_and_proof(url, abi_encoded_request, round_id)
            except Exception as e:
                logger.warning(f"Proof retrieval failed: {str(e)}. Remaining attempts: {attempts - attempt - 1}")
                await asyncio.sleep(self.settings.base_delay)
        raise AttestationError(f"Failed to retrieve data and proofs after {attempts} attempts")
