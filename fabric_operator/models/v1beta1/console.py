from kube_custom_resource import CustomResource, schema
from pydantic import Field

from .common import CRStatus, License


class IBPConsoleSpec(schema.BaseModel, extra="allow"):
    """
    The spec for a Fabric operations console.
    """

    license: License = Field(
        default_factory=License, description="The license for the console."
    )
    email: str = Field("", description="The email of the initial console admin.")
    password_secret_name: str = Field(
        "", description="The name of the secret holding the initial admin password."
    )
    service_account_name: str = Field(
        "", description="The service account used by the console."
    )
    fabric_version: str = Field(
        "", alias="version", description="The version of the console."
    )


class IBPConsole(
    CustomResource,
    subresources={"status": {}},
    printer_columns=[
        {
            "name": "Status",
            "type": "string",
            "jsonPath": ".status.type",
        },
    ],
):
    """
    A Hyperledger Fabric operations console.
    """

    spec: IBPConsoleSpec
    status: CRStatus = Field(default_factory=CRStatus)
