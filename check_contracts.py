#!/usr/bin/env python3
"""
Quick deployment check for the HedgyBot contracts
Reports whether bytecode exists at each configured address and its HBAR balance
"""
import sys

from contract_config import load_config
from services.contract_service import ContractService
from services.transaction_guard import display


def check_contract(service: ContractService, name: str) -> bool:
    """Check a single contract without sending transactions"""
    address = service.addresses[name]
    print(f"\n{name.title()} Contract ({address}):")

    try:
        code = service.get_code(address)
        exists = len(code) > 0
        print(f"  {'✅' if exists else '❌'} Exists: {exists}")

        if exists:
            balance = service.get_native_balance(address)
            print(f"  💰 Balance: {display(balance)} HBAR")

        return exists
    except Exception as e:
        print(f"  ❌ Error checking {name}: {e}")
        return False


def check_all_contracts(service: ContractService) -> bool:
    print('=' * 50)
    print(f"CHECKING SMART CONTRACTS (chain {service.chain_id})")
    print('=' * 50)

    results = [check_contract(service, name) for name in ('token', 'faucet', 'buy', 'sell')]

    print('=' * 50)
    return all(results)


def main() -> int:
    config = load_config()
    print(f"RPC URL: {config['rpc_url']}")

    service = ContractService(config)
    if not service.w3.is_connected():
        print("❌ Could not connect to RPC")
        return 1

    if check_all_contracts(service):
        print("✅ All contracts deployed!")
        return 0

    print("⚠️  Some contracts are missing")
    return 1


if __name__ == "__main__":
    sys.exit(main())
