from kube_custom_resource import CustomResource, schema
from pydantic import Field

from .common import (
    CRStatus,
    EnrollAction,
    HSMSpec,
    IngressSpec,
    License,
    ReenrollAction,
    SecretSpec,
    ServiceSpec,
)


class PeerImages(schema.BaseModel):
    """
    The images used by the containers of a peer.
    """

    peer_init_image: str = Field("", description="The image for the init container.")
    peer_init_tag: str = Field("", description="The tag for the init container.")
    peer_image: str = Field("", description="The image for the peer container.")
    peer_tag: str = Field("", description="The tag for the peer container.")
    dind_image: str = Field("", description="The image for the DinD container.")
    dind_tag: str = Field("", description="The tag for the DinD container.")
    grpcweb_image: str = Field(
        "", alias="grpcwebImage", description="The image for the gRPC web proxy."
    )
    grpcweb_tag: str = Field(
        "", alias="grpcwebTag", description="The tag for the gRPC web proxy."
    )
    couchdb_image: str = Field(
        "", alias="couchdbImage", description="The image for CouchDB."
    )
    couchdb_tag: str = Field("", alias="couchdbTag", description="The tag for CouchDB.")
    chaincode_launcher_image: str = Field(
        "", description="The image for the chaincode launcher."
    )
    chaincode_launcher_tag: str = Field(
        "", description="The tag for the chaincode launcher."
    )
    enroller_image: str = Field("", description="The image for the enroller.")
    enroller_tag: str = Field("", description="The tag for the enroller.")
    hsm_image: str = Field("", description="The image for the HSM client.")
    hsm_tag: str = Field("", description="The tag for the HSM client.")


class PeerAction(schema.BaseModel):
    """
    One-shot actions that can be requested for a peer.
    """

    restart: bool = Field(False, description="Restart the peer.")
    reenroll: ReenrollAction = Field(
        default_factory=ReenrollAction,
        description="Reenroll the certificates of the peer.",
    )
    enroll: EnrollAction = Field(
        default_factory=EnrollAction,
        description="Enroll the certificates of the peer.",
    )
    upgrade_dbs: bool = Field(
        False, alias="upgradedbs", description="Upgrade the peer databases."
    )


class IBPPeerSpec(schema.BaseModel):
    """
    The spec for a Fabric peer.
    """

    license: License = Field(
        default_factory=License, description="The license for the peer."
    )
    images: schema.Optional[PeerImages] = Field(
        None, description="The images to use for the peer."
    )
    registry_url: str = Field(
        "", alias="registryURL", description="The registry to pull images from."
    )
    image_pull_secrets: list[str] = Field(
        default_factory=list, description="The secrets used to pull images."
    )
    replicas: schema.Optional[schema.conint(ge=0)] = Field(
        None, description="The number of replicas for the peer deployment."
    )
    resources: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None, description="The resources for each of the peer containers."
    )
    service: schema.Optional[ServiceSpec] = Field(
        None, description="The service for the peer."
    )
    storage: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None, description="The storage for the peer and the state database."
    )
    msp_id: str = Field("", alias="mspID", description="The MSP ID of the peer.")
    state_db: str = Field(
        "", description="The state database to use, either leveldb or couchdb."
    )
    config_override: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None,
        alias="configoverride",
        description="Overrides for the generated peer configuration.",
    )
    hsm: schema.Optional[HSMSpec] = Field(
        None, description="The HSM used by the peer."
    )
    disable_node_ou: schema.Optional[bool] = Field(
        None, alias="disablenodeou", description="Disable node organizational units."
    )
    custom_names: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None, description="Custom names for the resources created for the peer."
    )
    fabric_version: str = Field(
        "", alias="version", description="The Fabric version of the peer."
    )
    num_seconds_warning_period: int = Field(
        0,
        description=(
            "The number of seconds before certificate expiry at which the peer "
            "reports a warning."
        ),
    )
    msp_secret: str = Field(
        "", description="The name of the secret containing the MSP crypto."
    )
    secret: schema.Optional[SecretSpec] = Field(
        None, description="The crypto material for the peer."
    )
    domain: str = Field("", description="The domain used to expose the peer.")
    ingress: schema.Optional[IngressSpec] = Field(
        None, description="The ingress for the peer."
    )
    peer_external_endpoint: str = Field(
        "", description="The external endpoint of the peer."
    )
    arch: list[str] = Field(
        default_factory=list, description="The architectures to schedule on."
    )
    region: str = Field("", description="The region to deploy the peer in.")
    zone: str = Field("", description="The zone to deploy the peer in.")
    dind_args: list[str] = Field(
        default_factory=list, description="Arguments for the DinD container."
    )
    action: PeerAction = Field(
        default_factory=PeerAction, description="Actions to perform on the peer."
    )


class IBPPeer(
    CustomResource,
    subresources={"status": {}},
    printer_columns=[
        {
            "name": "Version",
            "type": "string",
            "jsonPath": ".spec.version",
        },
        {
            "name": "Status",
            "type": "string",
            "jsonPath": ".status.type",
        },
        {
            "name": "Reason",
            "type": "string",
            "jsonPath": ".status.reason",
            "priority": 1,
        },
    ],
):
    """
    A Hyperledger Fabric peer.
    """

    spec: IBPPeerSpec
    status: CRStatus = Field(default_factory=CRStatus)
