"""Token contract and non-circulating holder addresses (Base mainnet PHA)."""

CONTRACT_ADDRESS = "0x336C9297AFB7798c292E9f80d8e566b947f291f0"
CONTRACT_DEPLOYED_AT = 12743284

REWARD_ADDRESS = "0x4731bc41b3cca4c2883b8ebb68cb546d5b3b4dd6"
PHALA_CHAIN_BRIDGE_ADDRESS = "0xcd38b15a419491c7c1238b0659f65c755792e257"
KHALA_LEGACY_CHAIN_BRIDGE_ADDRESS = "0x6ed3bc069cf4f87de05c04c352e8356492ec6efe"
KHALA_CHAIN_BRIDGE_ADDRESS = "0xeec0fb4913119567cdfc0c5fc2bf8f9f9b226c2d"
SYGMA_BRIDGE_ADDRESS = "0xC832588193cd5ED2185daDA4A531e0B26eC5B830"
PORTAL_BRIDGE_ADDRESS = "0x3ee18B2214AFF97000D974cf647E7C347E8fa585"

TOKEN_DECIMALS = 18

CIRCULATION_ID = "0"
