from kube_custom_resource import schema
from pydantic import Field


class StatusType(str, schema.Enum):
    """
    The types of status that a Fabric component can report.
    """

    DEPLOYING = "Deploying"
    DEPLOYED = "Deployed"
    PRECREATED = "Precreated"
    ERROR = "Error"
    WARNING = "Warning"
    INITIALIZING = "Initializing"


class ConditionStatus(str, schema.Enum):
    """
    Indicates whether the status was set successfully by the operator.
    """

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class CRStatusVersion(schema.BaseModel):
    """
    The versions that have been reconciled for a resource.
    """

    reconciled: str = Field(
        "", description="The Fabric version that was last reconciled."
    )


class CRStatus(schema.BaseModel, extra="allow"):
    """
    The status of a Fabric component.
    """

    type: schema.Optional[StatusType] = Field(
        None, description="The type of the status."
    )
    status: schema.Optional[ConditionStatus] = Field(
        None, description="Indicates if the status was set by the operator."
    )
    reason: str = Field("", description="The reason for the status.")
    message: str = Field("", description="A human-readable message for the status.")
    last_heartbeat_time: str = Field(
        "", description="The time that the status was last updated."
    )
    version: str = Field(
        "", description="The version of the operator that set the status."
    )
    error_code: int = Field(
        0,
        alias="errorcode",
        description="The code of the error that caused an Error status.",
    )
    versions: CRStatusVersion = Field(
        default_factory=CRStatusVersion,
        description="The versions that have been reconciled.",
    )


class License(schema.BaseModel):
    """
    The license for a Fabric component.
    """

    accept: bool = Field(
        False, description="Indicates that the license has been accepted."
    )


class MSP(schema.BaseModel):
    """
    The crypto material that makes up a membership service provider.
    """

    key_store: str = Field("", alias="keystore", description="The private key.")
    sign_certs: str = Field(
        "", alias="signcerts", description="The signing certificate."
    )
    ca_certs: list[str] = Field(
        default_factory=list, alias="cacerts", description="The CA certificates."
    )
    intermediate_certs: list[str] = Field(
        default_factory=list,
        alias="intermediatecerts",
        description="The intermediate CA certificates.",
    )
    admin_certs: list[str] = Field(
        default_factory=list, alias="admincerts", description="The admin certificates."
    )


class MSPSpec(schema.BaseModel):
    """
    The crypto material for each of the identities of a component.
    """

    component: schema.Optional[MSP] = Field(
        None, description="The crypto material for the component identity."
    )
    tls: schema.Optional[MSP] = Field(
        None, description="The crypto material for the TLS identity."
    )
    client_auth: schema.Optional[MSP] = Field(
        None,
        alias="clientauth",
        description="The crypto material for the client authentication identity.",
    )


class SecretSpec(schema.BaseModel):
    """
    The source of the crypto material for a component.
    """

    enrollment: schema.Optional[schema.Dict[str, schema.Any]] = Field(
        None, description="Enrollment details for each of the identities."
    )
    msp: schema.Optional[MSPSpec] = Field(
        None, description="The crypto material for each of the identities."
    )


class ServiceSpec(schema.BaseModel):
    """
    The service that exposes a component.
    """

    type: str = Field("", description="The type of the service.")


class IngressSpec(schema.BaseModel):
    """
    The ingress that exposes a component.
    """

    tls_secret_name: str = Field(
        "", description="The name of the secret containing the TLS certificate."
    )
    class_: str = Field("", alias="class", description="The ingress class.")


class HSMSpec(schema.BaseModel):
    """
    The hardware security module used by a component.
    """

    pkcs11_endpoint: str = Field(
        "", alias="pkcs11endpoint", description="The PKCS#11 endpoint of the HSM."
    )


class ReenrollAction(schema.BaseModel):
    """
    Requests for the certificates of a component to be reenrolled.
    """

    ecert: bool = Field(False, description="Reenroll the enrollment certificate.")
    ecert_new_key: bool = Field(
        False, description="Reenroll the enrollment certificate with a new key."
    )
    tlscert: bool = Field(False, description="Reenroll the TLS certificate.")
    tlscert_new_key: bool = Field(
        False, description="Reenroll the TLS certificate with a new key."
    )


class EnrollAction(schema.BaseModel):
    """
    Requests for the certificates of a component to be enrolled again.
    """

    ecert: bool = Field(False, description="Enroll the enrollment certificate.")
    tlscert: bool = Field(False, description="Enroll the TLS certificate.")
