# /liquidator/abis/flashloan.py
FLASHLOAN_PROVIDER_ABI = [
    {"inputs": [{"internalType": "address", "name": "token", "type": "address"}, {"internalType": "uint256", "name": "amount", "type": "uint256"}, {"internalType": "bytes", "name": "data", "type": "bytes"}], "name": "executeFlashloan", "outputs": [{"internalType": "bool", "name": "", "type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
    {"anonymous": False, "inputs": [{"indexed": True, "internalType": "address", "name": "initiator", "type": "address"}, {"indexed": True, "internalType": "address", "name": "token", "type": "address"}, {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"}, {"indexed": False, "internalType": "uint256", "name": "fee", "type": "uint256"}], "name": "FlashloanExecuted", "type": "event"},
]

# Field order of the payload the receiver decodes in its flashloan callback.
LIQUIDATION_PAYLOAD_TYPES = ["address", "address", "address", "address", "uint256", "address"]
