"""
Concrete ledger adapters.

Import the chain subpackages directly (``ibtbridge.bridge.chains.ethereum``,
``ibtbridge.bridge.chains.sui``); each pulls in its own RPC stack.
"""
