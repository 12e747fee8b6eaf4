"""
ABI of the vesting contract, limited to the functions the client calls.
"""

VESTING_CONTRACT_ABI = [
    {
        "type": "function",
        "name": "owner",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "checkVestedAmount",
        "stateMutability": "view",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "createVestingSchedule",
        "stateMutability": "payable",
        "inputs": [
            {"name": "recipient", "type": "address"},
            {"name": "duration", "type": "uint256"},
            {"name": "cliffDuration", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "claimBalance",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "user", "type": "address"}],
        "outputs": [],
    },
]

# Anvil's first deployment address from the default deployer
DEFAULT_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
ANVIL_CHAIN_ID = 31337
