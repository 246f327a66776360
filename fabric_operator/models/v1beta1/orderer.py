from kube_custom_resource import CustomResource, schema
from pydantic import Field

from .common import (
    CRStatus,
    EnrollAction,
    HSMSpec,
    License,
    ReenrollAction,
    SecretSpec,
    ServiceSpec,
)


class OrdererImages(schema.BaseModel):
    """
    The images used by the containers of an orderer.
    """

    orderer_init_image: str = Field("", description="The image for the init container.")
    orderer_init_tag: str = Field("", description="The tag for the init container.")
    orderer_image: str = Field("", description="The image for the orderer container.")
    orderer_tag: str = Field("", description="The tag for the orderer container.")
    grpcweb_image: str = Field(
        "", alias="grpcwebImage", description="The image for the gRPC web proxy."
    )
    grpcweb_tag: str = Field(
        "", alias="grpcwebTag", description="The tag for the gRPC web proxy."
    )
    enroller_image: str = Field("", description="The image for the enroller.")
    enroller_tag: str = Field("", description="The tag for the enroller.")
    hsm_image: str = Field("", description="The image for the HSM client.")
    hsm_tag: str = Field("", description="The tag for the HSM client.")


class OrdererAction(schema.BaseModel):
    """
    One-shot actions that can be requested for an orderer.
    """

    restart: bool = Field(False, description="Restart the orderer.")
    reenroll: ReenrollAction = Field(
        default_factory=ReenrollAction,
        description="Reenroll the certificates of the orderer.",
    )
    enroll: EnrollAction = Field(
        default_factory=EnrollAction,
        description="Enroll the certificates of the orderer.",
    )


class IBPOrdererSpec(schema.BaseModel, extra="allow"):
    """
    The spec for a Fabric ordering service node.
    """

    license: License = Field(
        default_factory=License, description="The license for the orderer."
    )
    images: schema.Optional[OrdererImages] = Field(
        None, description="The images to use for the orderer."
    )
    registry_url: str = Field(
        "", alias="registryURL", description="The registry to pull images from."
    )
    image_pull_secrets: list[str] = Field(
        default_factory=list, description="The secrets used to pull images."
    )
    replicas: schema.Optional[schema.conint(ge=0)] = Field(
        None, description="The number of replicas for the orderer deployment."
    )
    resources: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None, description="The resources for each of the orderer containers."
    )
    service: schema.Optional[ServiceSpec] = Field(
        None, description="The service for the orderer."
    )
    storage: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None, description="The storage for the orderer ledger."
    )
    msp_id: str = Field("", alias="mspID", description="The MSP ID of the orderer.")
    orderer_type: str = Field("", description="The consensus type of the orderer.")
    org_name: str = Field("", description="The organization name of the orderer.")
    system_channel_name: str = Field(
        "", description="The name of the system channel."
    )
    cluster_size: schema.Optional[schema.conint(ge=1)] = Field(
        None, description="The number of orderer nodes in the cluster."
    )
    node_number: schema.Optional[schema.conint(ge=1)] = Field(
        None,
        alias="number",
        description="The number of this node in the cluster, unset for the parent.",
    )
    fabric_version: str = Field(
        "", alias="version", description="The Fabric version of the orderer."
    )
    num_seconds_warning_period: int = Field(
        0,
        description=(
            "The number of seconds before certificate expiry at which the orderer "
            "reports a warning."
        ),
    )
    secret: schema.Optional[SecretSpec] = Field(
        None, description="The crypto material for the orderer."
    )
    config_override: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None,
        alias="configoverride",
        description="Overrides for the generated orderer configuration.",
    )
    hsm: schema.Optional[HSMSpec] = Field(
        None, description="The HSM used by the orderer."
    )
    disable_node_ou: schema.Optional[bool] = Field(
        None, alias="disablenodeou", description="Disable node organizational units."
    )
    domain: str = Field("", description="The domain used to expose the orderer.")
    external_address: str = Field(
        "", description="The external address of the orderer."
    )
    arch: list[str] = Field(
        default_factory=list, description="The architectures to schedule on."
    )
    region: str = Field("", description="The region to deploy the orderer in.")
    zone: str = Field("", description="The zone to deploy the orderer in.")
    action: OrdererAction = Field(
        default_factory=OrdererAction,
        description="Actions to perform on the orderer.",
    )


class IBPOrderer(
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
    ],
):
    """
    A Hyperledger Fabric ordering service node.
    """

    spec: IBPOrdererSpec
    status: CRStatus = Field(default_factory=CRStatus)
