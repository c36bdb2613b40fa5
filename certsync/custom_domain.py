"""
Custom-domain DNS setup.

After the infrastructure stack is deployed, its outputs publish the
custom domain name and the endpoint it must point at. This module reads
those outputs and reconciles the matching CNAME record.
"""

import json
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from .aws import AwsAdapter
from .config_loader import AUTOMATIC_TTL
from .dns import DnsReconciler
from .errors import ApiError, ResourceNotFoundError
from .logger import get_logger

DOMAIN_NAME_OUTPUT = "CustomDomainName"
TARGET_OUTPUT = "CustomDomainNameTarget"


@dataclass
class DnsSetupResult:
    success: bool
    hostname: str
    target: str
    action: str
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "success": self.success,
            "hostname": self.hostname,
            "target": self.target,
            "action": self.action,
            "durationSeconds": round(self.duration_seconds, 3),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class StackOutputs(AwsAdapter):
    """Reads CloudFormation stack outputs."""

    service = "cloudformation"
    provider = "AWS CloudFormation"

    def get_stack_outputs(
        self,
        stack_name: str,
        output_keys: Optional[List[str]] = None,
    ) -> Dict[str, str]:
        """
        Get the outputs of a stack.

        Args:
            stack_name: Stack name or ID
            output_keys: Keys to return (all outputs when None)

        Returns:
            Mapping of output key to value; requested keys that the stack
            does not publish are left out

        Raises:
            ResourceNotFoundError: If the stack does not exist
        """
        try:
            response = self._call_with_retry(
                "DescribeStacks",
                lambda: self.client.describe_stacks(StackName=stack_name),
            )
        except ApiError as e:
            # CloudFormation reports a missing stack as a ValidationError
            if "ValidationError" in e.error_codes and "does not exist" in e.message:
                raise ResourceNotFoundError("Stack", stack_name, cause=e) from e
            raise

        stacks = response.get("Stacks", [])
        if not stacks:
            raise ResourceNotFoundError("Stack", stack_name)

        outputs = {
            output["OutputKey"]: output["OutputValue"]
            for output in stacks[0].get("Outputs", [])
        }
        if output_keys is None:
            return outputs
        return {key: outputs[key] for key in output_keys if key in outputs}


def setup_custom_domain_dns(
    reconciler: DnsReconciler,
    stack_outputs: Optional[StackOutputs] = None,
    stack_name: Optional[str] = None,
    domain_name: Optional[str] = None,
    target: Optional[str] = None,
    proxied: bool = True,
    ttl: int = AUTOMATIC_TTL,
) -> DnsSetupResult:
    """
    Point the custom domain at its endpoint.

    domain_name and target are read from the stack outputs unless given.

    Args:
        reconciler: DNS reconciler for the zone
        stack_outputs: Stack output reader (required when reading outputs)
        stack_name: Stack publishing CustomDomainName/CustomDomainNameTarget
        domain_name: Explicit custom domain name
        target: Explicit CNAME target
        proxied: Route traffic through the Cloudflare proxy
        ttl: Record TTL (1 = automatic)

    Returns:
        DnsSetupResult

    Raises:
        ResourceNotFoundError: If the stack or one of its outputs is missing
    """
    logger = get_logger()
    start = time.monotonic()

    if not (domain_name and target):
        if not stack_name or stack_outputs is None:
            raise ResourceNotFoundError(
                "Stack output", DOMAIN_NAME_OUTPUT if not domain_name else TARGET_OUTPUT
            )
        logger.info(f"Reading custom domain outputs from stack {stack_name}")
        outputs = stack_outputs.get_stack_outputs(
            stack_name, [DOMAIN_NAME_OUTPUT, TARGET_OUTPUT]
        )
        domain_name = domain_name or outputs.get(DOMAIN_NAME_OUTPUT)
        target = target or outputs.get(TARGET_OUTPUT)
        if not domain_name:
            raise ResourceNotFoundError("Stack output", f"{stack_name}/{DOMAIN_NAME_OUTPUT}")
        if not target:
            raise ResourceNotFoundError("Stack output", f"{stack_name}/{TARGET_OUTPUT}")

    logger.info(f"Custom domain: {domain_name} -> {target}")
    result = reconciler.upsert(domain_name, "CNAME", target, proxied=proxied, ttl=ttl)

    return DnsSetupResult(
        success=True,
        hostname=domain_name,
        target=target,
        action=result.action,
        duration_seconds=time.monotonic() - start,
    )
