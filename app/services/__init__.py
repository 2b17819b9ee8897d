"""
Services.

- blockchain       - Failover RPC transport, chain client, subscriptions
- balance_monitor  - Deposit detection and bridge dispatch
- bridge           - Cross-chain bridge workflow and notifications
- wallet           - Encrypted key store
"""
