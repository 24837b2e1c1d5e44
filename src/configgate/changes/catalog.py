"""Backwards-incompatible changes shipped with configgate.

Workflow for releasing a version V with incompatible changes:
1. Append change records with ``version="V"`` to ``CHANGES`` below.
2. Set ``config_version: "V"`` in the example configuration.

Records must stay sorted by increasing version.
"""

from configgate.changes.registry import ChangeRecord, ChangeRegistry
from configgate.config.models import DEFAULT_SECRETS_DIR, ConfigState


def _enabled(service: str):
    def condition(state: ConfigState) -> bool:
        return state.is_enabled(service)

    return condition


def _joinmarket_native_segwit(state: ConfigState) -> str:
    data_dir = state.service("joinmarket").data_dir
    return f"""\
JoinMarket 0.8.0 moves from wrapped segwit wallets to native segwit wallets.

If you have an existing wrapped segwit wallet, you have to manually migrate
your funds to a new native segwit wallet.

To migrate, you first have to deploy the new JoinMarket version:
1. Set `config_version: "0.0.26"` in your configuration
2. Deploy the new configuration

Then run the following on your node:
1. Move your wallet:
   mv {data_dir}/wallets/wallet.jmdat {data_dir}/wallets/old.jmdat
2. Autogenerate a new p2wpkh wallet:
   systemctl restart joinmarket
3. Transfer your funds manually by doing sweeps for each mixdepth:
   jm-sendpayment -m <mixdepth> -N 0 old.jmdat 0 <destaddr>

   Run this command for every available mixdepth (`-m 0`, `-m 1`, ...).
   IMPORTANT: Use a different <destaddr> for every run.

   Explanation of the options:
   -m <mixdepth>: spend from given mixdepth.
   -N 0: don't coinjoin on this spend
   old.jmdat: spend from old wallet
   0: set amount to zero to do a sweep, i.e. transfer all funds at given mixdepth
   <destaddr>: destination p2wpkh address from wallet.jmdat with mixdepth 0

Privacy Notes:
- This method transfers all funds to the same mixdepth 0.
  Because wallet inputs at the same mixdepth can be considered to be linked, this undoes
  the unlinking effects of previous coinjoins and resets all funds to mixdepth 0.
  This only applies in case that the inputs to the new wallet are used for further coinjoins.
  When inputs are instead kept separate in future transactions, the unlinking effects of
  different mixdepths are preserved.
- A different <destaddr> should be used for every transaction.
- You might want to time stagger the transactions.
- Additionally, you can use coin-freezing to exclude specific inputs from the sweep.

More information at
https://github.com/JoinMarket-Org/joinmarket-clientserver/blob/v0.8.0/docs/NATIVE-SEGWIT-UPGRADE.md
"""


def onion_service_change(service: str) -> ChangeRecord:
    """Build the 0.0.30 notice for a service whose onion service was disabled."""
    return ChangeRecord(
        version="0.0.30",
        condition=_enabled(service),
        message=f"""\
The onion service for {service} has been disabled in the default
configuration (`secure-node` preset).

To enable the onion service, add the following to your configuration:
onion_services.{service}.enable: true
""",
    )


def _runtime_secrets_moved(state: ConfigState) -> str:
    secrets_dir = state.secrets_dir
    lnd = state.service("lnd")
    jm = state.service("joinmarket")
    return f"""\
Secret files generated by services at runtime are now stored in the service
data dirs instead of the global secrets dir.

To migrate, run the following Bash script as root on your node:

  if [[ -e {secrets_dir}/lnd-seed-mnemonic ]]; then
    install -o {lnd.user} -g {lnd.group} -m400 "{secrets_dir}/lnd-seed-mnemonic" "{lnd.data_dir}"
  fi
  if [[ -e {secrets_dir}/jm-wallet-seed ]]; then
    install -o {jm.user} -g {jm.group} -m400 "{secrets_dir}/jm-wallet-seed" "{jm.data_dir}"
  fi
  rm -f "{secrets_dir}"/{{lnd-seed-mnemonic,jm-wallet-seed}}
"""


_JOINMARKET_RPC_WALLET = """\
Starting with 0.21.0, bitcoind no longer automatically creates and loads a
default wallet named `wallet.dat` [1].
The joinmarket service now automatically creates a watch-only bitcoind wallet
(named by option `services.joinmarket.rpc_wallet_file`) when creating a joinmarket wallet.

If you've used JoinMarket before, add the following to your configuration to
continue using the default `wallet.dat` wallet:
services.joinmarket.rpc_wallet_file: null

[1] https://github.com/bitcoin/bitcoin/pull/15454
"""


def _joinmarket_fidelity_bonds(state: ConfigState) -> str:
    data_dir = state.service("joinmarket").data_dir
    return f"""\
Joinmarket 0.9.1 has added support for Fidelity Bonds [1].

If you've used joinmarket before, do the following to enable Fidelity Bonds in your existing wallet.
Enabling Fidelity Bonds has no effect if you don't use them.

1. Deploy the new system config to your node
2. Run the following on your node:
   # Ensure that the wallet seed exists and rename the wallet
   ls {data_dir}/jm-wallet-seed && mv {data_dir}/wallets/wallet.jmdat{{,.bak}}
   # This automatically recreates the wallet with Fidelity Bonds support
   systemctl restart joinmarket
   # Remove wallet backup if update was successful
   rm {data_dir}/wallets/wallet.jmdat.bak

[1] https://github.com/JoinMarket-Org/joinmarket-clientserver/blob/master/docs/fidelity-bonds.md
"""


def _electrs_database_format(state: ConfigState) -> str:
    db_path = f"{state.service('electrs').data_dir}/mainnet"
    return f"""\
Electrs 0.9.0 has switched to a new, more space efficient database format,
reducing storage demands by ~60% [1].
When started, electrs will automatically reindex the bitcoin blockchain.
This can take a few hours, depending on your hardware. The electrs server is
inactive during reindexing.

To upgrade, do the following:

- If you have less than 40 GB of free space [2] on the electrs data dir volume:
  1. Delete the database:
     systemctl stop electrs
     rm -r '{db_path}'
  2. Deploy the new system config to your node

- Otherwise:
  1. Deploy the new system config to your node
  2. Check that electrs works as expected and delete the old database:
     rm -r '{db_path}'

[1] https://github.com/romanz/electrs/blob/557911e3baf9a000f883a6f619f0518945a7678d/doc/usage.md#upgrading
[2] This is based on the bitcoin blockchain size as of 2021-09.
    The general formula is, approximately, size_of({db_path}) * 0.6
    This includes the final database size (0.4) plus some extra storage (0.2).
"""


def _preset_with_liquidd(state: ConfigState) -> bool:
    return state.secure_node_preset_enabled and state.is_enabled("liquidd")


_LIQUIDD_PRUNE = """\
The `secure-node` preset does _not_ set `liquidd.prune: 1000` anymore.

  - If you want to keep the same behavior as before, manually set
    `services.liquidd.prune: 1000` in your configuration.
  - Otherwise, if you want to turn off pruning, you must instruct liquidd
    to reindex by setting `services.liquidd.extra_config: "reindex=1"`.
    This can be removed after having started liquidd with that option
    once.
"""


def _preset_with_default_secrets_dir(state: ConfigState) -> bool:
    return state.secure_node_preset_enabled and state.secrets_dir == DEFAULT_SECRETS_DIR


_PRESET_SECRETS_DIR = """\
The `secure-node` preset does not set the secrets directory
to "/secrets" anymore.
Instead, the default location "/etc/nix-bitcoin-secrets" is used.

To upgrade, choose one of the following:

- Continue using "/secrets":
  Add `secrets_dir: "/secrets"` to your configuration.

- Move your secrets to the default location:
  Run the following command as root on your node:
  `rsync -a /secrets/ /etc/nix-bitcoin-secrets`.
  You can delete the old "/secrets" directory after deploying the new system
  config to your node.
"""

_NBXPLORER_POSTGRES = """\
The nbxplorer database backend has changed from DBTrie to Postgresql.
The new `services.postgresql` database name is `nbxplorer`.
The migration happens automatically after deploying.
Migration time for a large server with a 5GB DBTrie database takes about 40 minutes.
See also: https://github.com/dgarage/NBXplorer/blob/master/docs/Postgres-Migration.md
"""


def _clightning_rest_renamed(state: ConfigState) -> str:
    return f"""\
The `cl-rest` service has been renamed to `clightning-rest`.
and is now available as a standalone service (`services.clightning-rest`).
Its data dir has moved to `{state.service("clightning-rest").data_dir}`,
and the service now runs under the clightning user and group.
The data dir migration happens automatically after deploying.
"""


def _lndconnect_onion_enabled(state: ConfigState) -> bool:
    # Either a mapping with an `enable` key or a plain boolean
    lndconnect_onion = state.service("lnd").option("lndconnect_onion")
    if isinstance(lndconnect_onion, dict):
        return bool(lndconnect_onion.get("enable", False))
    return lndconnect_onion is True


_FULCRUM_DATABASE_FORMAT = """\
Fulcrum 1.9.0 has changed its database format.
The database update happens automatically and instantly on deployment,
but you can't switch back to an older Fulcrum version afterwards.
"""


# Sorted by increasing version numbers
CHANGES: tuple[ChangeRecord, ...] = (
    ChangeRecord(
        version="0.0.26",
        condition=_enabled("joinmarket"),
        message=_joinmarket_native_segwit,
    ),
    onion_service_change("clightning"),
    onion_service_change("lnd"),
    onion_service_change("btcpayserver"),
    ChangeRecord(
        version="0.0.41",
        condition=lambda state: state.is_enabled("lnd") or state.is_enabled("joinmarket"),
        message=_runtime_secrets_moved,
    ),
    ChangeRecord(
        version="0.0.49",
        condition=_enabled("joinmarket"),
        message=_JOINMARKET_RPC_WALLET,
    ),
    ChangeRecord(
        version="0.0.51",
        condition=_enabled("joinmarket"),
        message=_joinmarket_fidelity_bonds,
    ),
    ChangeRecord(
        version="0.0.53",
        condition=_enabled("electrs"),
        message=_electrs_database_format,
    ),
    ChangeRecord(
        version="0.0.57",
        condition=_preset_with_liquidd,
        message=_LIQUIDD_PRUNE,
    ),
    ChangeRecord(
        version="0.0.65",
        condition=_preset_with_default_secrets_dir,
        message=_PRESET_SECRETS_DIR,
    ),
    ChangeRecord(
        version="0.0.70",
        condition=_enabled("nbxplorer"),
        message=_NBXPLORER_POSTGRES,
    ),
    ChangeRecord(
        version="0.0.70",
        condition=_enabled("clightning-rest"),
        message=_clightning_rest_renamed,
    ),
    ChangeRecord(
        version="0.0.70",
        condition=_lndconnect_onion_enabled,
        message="The `lndconnect-rest-onion` binary has been renamed to `lndconnect`.\n",
    ),
    ChangeRecord(
        version="0.0.85",
        condition=_enabled("fulcrum"),
        message=_FULCRUM_DATABASE_FORMAT,
    ),
)


def build_default_registry() -> ChangeRegistry:
    """Build the validated registry of shipped changes."""
    return ChangeRegistry.validated(CHANGES)


LATEST_CONFIG_VERSION = CHANGES[-1].version
