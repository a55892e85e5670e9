"""EC2 instance-id lookup through the AWS CLI."""

import json
import logging
import re
import shutil
import subprocess


logger = logging.getLogger(__name__)

# Old-style (8 hex digit) and current (17 hex digit) instance ids.
INSTANCE_ID_PATTERN = re.compile(r"i-(?:[0-9a-f]{17}|[0-9a-f]{8})(?![0-9a-f])")


def find_instance_id(host: str) -> str | None:
    """Return the EC2 instance id embedded in ``host``, if any.

    Args:
        host: Hostname such as "i-0a1b2c3d" or "web-i-0a1b2c3d.internal".

    Returns:
        str | None: The instance id, or None when the host has none.
    """
    match = INSTANCE_ID_PATTERN.search(host)
    return match.group(0) if match else None


def build_describe_cmd(instance_id: str, region: str) -> list[str]:
    """Build the ``aws ec2 describe-instances`` command for one instance."""
    return [
        "aws", "ec2", "describe-instances",
        "--instance-ids", instance_id,
        "--region", region,
        "--output", "json",
    ]


def parse_public_address(raw: str) -> str | None:
    """Extract the first public IP address from describe-instances JSON.

    Args:
        raw: Stdout of ``aws ec2 describe-instances``.

    Returns:
        str | None: The address, or None when the output holds no
            reservation, no instance, or no public address.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    reservations = data.get("Reservations")
    if not isinstance(reservations, list):
        return None

    for reservation in reservations:
        if not isinstance(reservation, dict):
            continue
        instances = reservation.get("Instances")
        if not isinstance(instances, list):
            continue
        for instance in instances:
            if not isinstance(instance, dict):
                continue
            address = instance.get("PublicIpAddress")
            if isinstance(address, str) and address:
                return address
    return None


def lookup_public_address(instance_id: str, region: str) -> str | None:
    """Resolve an instance id to its public IP address.

    Args:
        instance_id: EC2 instance id.
        region: AWS region to search, e.g. "us-east-1".

    Returns:
        str | None: The public address, or None if the lookup failed or
            found nothing.
    """
    if shutil.which("aws") is None:
        logger.warning("aws CLI not found on $PATH; cannot look up %s", instance_id)
        return None

    cmd = build_describe_cmd(instance_id, region)
    logger.info("EC2 instance lookup: %s", cmd)
    result = subprocess.run(cmd, capture_output=True, text=True)

    if result.returncode != 0:
        logger.debug("aws exited with %d: %s", result.returncode, result.stderr.strip())
        return None
    return parse_public_address(result.stdout)
