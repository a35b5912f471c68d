# /liquidator/abis/morpho.py
MORPHO_ABI = [
    {"inputs": [{"internalType": "address", "name": "_poolToken", "type": "address"}, {"internalType": "address", "name": "_borrower", "type": "address"}, {"internalType": "uint256", "name": "_amount", "type": "uint256"}], "name": "liquidate", "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"internalType": "address", "name": "_poolToken", "type": "address"}, {"internalType": "address", "name": "_borrower", "type": "address"}], "name": "isLiquidatable", "outputs": [{"internalType": "bool", "name": "", "type": "bool"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"internalType": "address", "name": "_poolToken", "type": "address"}, {"internalType": "address", "name": "_borrower", "type": "address"}], "name": "getHealthFactor", "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"internalType": "address", "name": "_poolToken", "type": "address"}, {"internalType": "address", "name": "_borrower", "type": "address"}], "name": "getUserMarketData", "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}, {"internalType": "uint256", "name": "", "type": "uint256"}, {"internalType": "uint256", "name": "", "type": "uint256"}, {"internalType": "uint256", "name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
]
