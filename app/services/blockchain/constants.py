"""
Deposit contract constants.

Contains the deposit contract ABI fragments used by the monitor.
"""

DEPOSIT_EVENT_NAME = "DepositMade"

# DepositMade(address indexed user, uint256 amount, uint256 timestamp, uint256 depositIndex)
DEPOSIT_CONTRACT_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "user", "type": "address"},
            {"indexed": False, "name": "amount", "type": "uint256"},
            {"indexed": False, "name": "timestamp", "type": "uint256"},
            {"indexed": False, "name": "depositIndex", "type": "uint256"},
        ],
        "name": "DepositMade",
        "type": "event",
    },
    {
        "constant": True,
        "inputs": [{"name": "user", "type": "address"}],
        "name": "getTotalDeposited",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "user", "type": "address"}],
        "name": "getDepositCount",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]
