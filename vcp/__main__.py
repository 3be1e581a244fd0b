"""Run built-in proof scenarios against a VCP engine.

Usage:
    python -m vcp [--scenario NAME ...] [--zkp-lib LIB ...] [--sig-type TYPE]
                  [--engine-url URL] [--nonce NONCE] [--timeout SECONDS] [--json]

    Defaults:
        --scenario    every scenario
        --zkp-lib     VCP_ZKP_LIB (DNC)
        --sig-type    all (NonBlinded and Blinded)
        --engine-url  VCP_ENGINE_URL (http://127.0.0.1:8080)

Exit code is 0 only when every selected combination passes.
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Dict, List

from vcp.core.config import DEFAULT_CRYPTO_LIBRARY, SESSION_NONCE, SUPPORTED_CRYPTO_LIBRARIES
from vcp.logging_config import configure_logging
from vcp.protocol import SCENARIOS, EngineGateway, SigningMode, VCPError, run_scenario

log = logging.getLogger("vcp")


async def run_matrix(args) -> List[Dict]:
    results = []
    modes = [SigningMode(m) for m in args.sig_type]
    for library in args.zkp_lib:
        gateway = EngineGateway(library, base_url=args.engine_url, timeout=args.timeout)
        for mode in modes:
            for name in args.scenario:
                started = time.monotonic()
                result = {"scenario": name, "zkp_lib": library, "sig_type": mode.value}
                try:
                    outcome = await run_scenario(name, library, mode, gateway=gateway, nonce=args.nonce)
                    result["status"] = "pass"
                    result["decryption"] = outcome.decryption.value
                    result["revealed"] = {k: {str(i): v for i, v in vals.items()} for k, vals in outcome.revealed.items()}
                except VCPError as e:
                    result["status"] = "fail"
                    result["detail"] = e.describe()
                result["elapsed_ms"] = int((time.monotonic() - started) * 1000)
                results.append(result)
    return results


def main():
    parser = argparse.ArgumentParser(description="VCP proof scenario runner")
    parser.add_argument("--scenario", action="append", choices=list(SCENARIOS),
                        help="Scenario to run (repeatable, default: all)")
    parser.add_argument("--zkp-lib", action="append", choices=sorted(SUPPORTED_CRYPTO_LIBRARIES),
                        help="Crypto library (repeatable, default: VCP_ZKP_LIB)")
    parser.add_argument("--sig-type", choices=["NonBlinded", "Blinded", "all"], default="all",
                        help="Issuance signing mode")
    parser.add_argument("--engine-url", help="Engine base URL")
    parser.add_argument("--nonce", default=SESSION_NONCE, help="Proof nonce")
    parser.add_argument("--timeout", type=float, help="Engine request timeout in seconds")
    parser.add_argument("--log-level", help="Log level (default: VCP_LOG_LEVEL or INFO)")
    parser.add_argument("--json", action="store_true", help="JSON output")
    args = parser.parse_args()

    args.scenario = args.scenario or list(SCENARIOS)
    args.zkp_lib = args.zkp_lib or [DEFAULT_CRYPTO_LIBRARY]
    args.sig_type = ["NonBlinded", "Blinded"] if args.sig_type == "all" else [args.sig_type]

    configure_logging(args.log_level)
    results = asyncio.run(run_matrix(args))

    if args.json:
        print(json.dumps({"results": results, "timestamp": time.time()}, indent=2))
    else:
        for r in results:
            status = r["status"].upper()
            detail = r.get("detail") or r.get("decryption", "")
            print(f"  {status}  [{r['zkp_lib']} {r['sig_type']} {r['scenario']}] {detail} ({r['elapsed_ms']}ms)")

    sys.exit(0 if all(r["status"] == "pass" for r in results) else 1)


if __name__ == "__main__":
    main()
