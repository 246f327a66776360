from kube_custom_resource import CustomResource, schema
from pydantic import Field

from .common import CRStatus, HSMSpec, License, ServiceSpec


class CAImages(schema.BaseModel):
    """
    The images used by the containers of a CA.
    """

    ca_image: str = Field("", description="The image for the CA container.")
    ca_tag: str = Field("", description="The tag for the CA container.")
    ca_init_image: str = Field("", description="The image for the init container.")
    ca_init_tag: str = Field("", description="The tag for the init container.")
    enroller_image: str = Field("", description="The image for the enroller.")
    enroller_tag: str = Field("", description="The tag for the enroller.")
    hsm_image: str = Field("", description="The image for the HSM client.")
    hsm_tag: str = Field("", description="The tag for the HSM client.")


class CARenewAction(schema.BaseModel):
    """
    Requests for the certificates of a CA to be renewed.
    """

    tlscert: bool = Field(False, description="Renew the TLS certificate.")


class CAAction(schema.BaseModel):
    """
    One-shot actions that can be requested for a CA.
    """

    restart: bool = Field(False, description="Restart the CA.")
    renew: CARenewAction = Field(
        default_factory=CARenewAction,
        description="Renew the certificates of the CA.",
    )


class IBPCASpec(schema.BaseModel, extra="allow"):
    """
    The spec for a Fabric certificate authority.
    """

    license: License = Field(
        default_factory=License, description="The license for the CA."
    )
    images: schema.Optional[CAImages] = Field(
        None, description="The images to use for the CA."
    )
    registry_url: str = Field(
        "", alias="registryURL", description="The registry to pull images from."
    )
    image_pull_secrets: list[str] = Field(
        default_factory=list, description="The secrets used to pull images."
    )
    replicas: schema.Optional[schema.conint(ge=0)] = Field(
        None, description="The number of replicas for the CA deployment."
    )
    resources: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None, description="The resources for each of the CA containers."
    )
    service: schema.Optional[ServiceSpec] = Field(
        None, description="The service for the CA."
    )
    storage: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None, description="The storage for the CA database."
    )
    fabric_version: str = Field(
        "", alias="version", description="The Fabric CA version."
    )
    config_override: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None,
        alias="configoverride",
        description=(
            "Overrides for the generated configuration, with the keys ca and tlsca "
            "for the CA and the TLS CA."
        ),
    )
    hsm: schema.Optional[HSMSpec] = Field(
        None, description="The HSM used by the CA."
    )
    domain: str = Field("", description="The domain used to expose the CA.")
    arch: list[str] = Field(
        default_factory=list, description="The architectures to schedule on."
    )
    region: str = Field("", description="The region to deploy the CA in.")
    zone: str = Field("", description="The zone to deploy the CA in.")
    action: CAAction = Field(
        default_factory=CAAction, description="Actions to perform on the CA."
    )


class IBPCA(
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
    A Hyperledger Fabric certificate authority.
    """

    spec: IBPCASpec
    status: CRStatus = Field(default_factory=CRStatus)
