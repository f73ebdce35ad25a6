"""
Remote daemon descriptors.

Nodes are written as ``[user:password@]host[:port][/network[/name]]``,
e.g. ``xmr-de.boldsuck.org:18081/mainnet/boldsuck.org``.  The network
label is informational; a missing port falls back to the network's
default RPC port.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

NETWORKS = ("mainnet", "stagenet", "testnet")

DEFAULT_RPC_PORTS = {
    "mainnet": 18081,
    "stagenet": 38081,
    "testnet": 28081,
}

_NODE_RE = re.compile(
    r"^(?:(?P<user>[^:@/\s]+)(?::(?P<password>[^@/\s]*))?@)?"
    r"(?P<host>[^:/@\s]+)"
    r"(?::(?P<port>\d{1,5}))?"
    r"(?:/(?P<network>[A-Za-z]+))?"
    r"(?:/(?P<name>.*))?$"
)


@dataclass(frozen=True)
class NodeDescriptor:
    host: str
    port: int
    network: str = "mainnet"
    name: str = ""
    username: str = ""
    password: str = field(default="", repr=False)

    @classmethod
    def parse(cls, text: str) -> NodeDescriptor | None:
        """Parse a node string.  Returns None if it is malformed."""
        m = _NODE_RE.match(text.strip())
        if m is None:
            return None

        network = (m.group("network") or "mainnet").lower()
        if network not in NETWORKS:
            return None

        port = int(m.group("port")) if m.group("port") else DEFAULT_RPC_PORTS[network]
        if not 0 < port < 65536:
            return None

        host = m.group("host")
        return cls(
            host=host,
            port=port,
            network=network,
            name=m.group("name") or host,
            username=m.group("user") or "",
            password=m.group("password") or "",
        )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def is_onion(self) -> bool:
        return self.host.endswith(".onion")

    def to_uri(self) -> str:
        auth = ""
        if self.username:
            auth = f"{self.username}:{self.password}@" if self.password else f"{self.username}@"
        return f"{auth}{self.host}:{self.port}/{self.network}/{self.name}"

    def __str__(self) -> str:
        return f"{self.name} ({self.address})"


DEFAULT_NODES: dict[str, str] = {
    "AGORIST": "xmr.agor.ist:18089/mainnet/agor.ist",
    "BOLDSUCK": "xmr-de.boldsuck.org:18081/mainnet/boldsuck.org",
    "BOLDSUCK_ONION": "6dsdenp6vjkvqzy4wzsnzn6wixkdzihx3khiumyzieauxuxslmcaeiad.onion:18081/mainnet/boldsuck.onion",
    "CAKE": "xmr-node.cakewallet.com:18081/mainnet/cakewallet.com",
    "DS_JETZT": "monero.ds-jetzt.de:18089/mainnet/ds-jetzt.de",
    "DS_JETZT_ONION": "qvlr4w7yhnjrdg3txa72jwtpnjn4ezsrivzvocbnvpfbdo342fahhoad.onion:18089/mainnet/ds-jetzt.onion",
    "MONERODEVS": "node.monerodevs.org:18089/mainnet/monerodevs.org",
    "MONERUJO": "nodex.monerujo.io:18081/mainnet/monerujo.io",
    "MONERUJO_ONION": "monerujods7mbghwe6cobdr6ujih6c22zu5rl7zshmizz2udf7v7fsad.onion:18081/mainnet/monerujo.onion",
    "SETH": "node.sethforprivacy.com:18089/mainnet/sethforprivacy.com",
    "SETH_ONION": "sfpp2p7wnfjv3lrvfan4jmmkvhnbsbimpa3cqyuf7nt6zd24xhcqcsyd.onion/mainnet/sethforprivacy.onion",
    "STACK": "monero.stackwallet.com:18081/mainnet/stackwallet.com",
    "STORMYCLOUD": "xmr.stormycloud.org:18089/mainnet/stormycloud.org",
    "TENZ": "monero.10z.com.ar:18089/mainnet/10z.com.ar",
    "XMRROCKS": "node.xmr.rocks:18089/mainnet/xmr.rocks",
    "XMRROCKS_ONION": "xqnnz2xmlmtpy2p4cm4cphg2elkwu5oob7b7so5v4wwgt44p6vbx5ryd.onion/mainnet/xmr.rocks.onion",
    "XMRTW": "opennode.xmr-tw.org:18089/mainnet/xmr-tw.org",
}


def default_nodes() -> list[NodeDescriptor]:
    """Parsed built-in node list."""
    nodes = []
    for uri in DEFAULT_NODES.values():
        node = NodeDescriptor.parse(uri)
        if node is not None:
            nodes.append(node)
    return nodes
