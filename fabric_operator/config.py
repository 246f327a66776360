import enum
import typing as t

from configomatic import (
    Configuration as BaseConfiguration,
)
from configomatic import (
    LoggingConfiguration,
)
from easysemver import SEMVER_VERSION_REGEX
from pydantic import (
    Field,
    StringConstraints,
    confloat,
    conint,
    constr,
)

#: Type for a string that validates as a SemVer version
SemVerVersion = t.Annotated[str, StringConstraints(pattern=SEMVER_VERSION_REGEX)]


class Platform(str, enum.Enum):
    """
    The platforms that the operator can be deployed on.
    """

    K8S = "k8s"
    OPENSHIFT = "openshift"


class Configuration(
    BaseConfiguration,
    default_path="/etc/fabric-operator/operator.yaml",
    path_env_var="FABRIC_OPERATOR_CONFIG",
    env_prefix="FABRIC_OPERATOR",
):
    """
    Top-level configuration model.
    """

    #: The logging configuration
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)

    #: The API group of the Fabric CRDs
    api_group: constr(min_length=1) = "ibp.com"
    #: A list of categories to place CRDs into
    crd_categories: list[constr(min_length=1)] = Field(
        default_factory=lambda: ["fabric"]
    )

    #: The prefix to use for operator annotations
    annotation_prefix: str = "ibp.com"

    #: The field manager name to use for server-side apply
    easykube_field_manager: constr(min_length=1) = "fabric-operator"

    #: The amount of time (seconds) before a watch is forcefully restarted
    watch_timeout: conint(gt=0) = 600

    #: The platform that the operator is deployed on
    #: This selects the offering that renders and applies the workloads
    platform: Platform = Platform.K8S

    #: The version of the operator, recorded in the status of reconciled resources
    operator_version: SemVerVersion = "1.0.0"

    #: The number of times a status update is retried on a conflict
    status_patch_retries: conint(ge=0) = 2

    #: The suffix of the config map used to coordinate restarts for a component
    #: For example, peers use peer-restart-config
    restart_config_map_suffix: constr(min_length=1) = "restart-config"

    #: The number of seconds to wait before the first repeat pass when a resource
    #: still has pending updates and the offering did not ask for a specific delay
    #: The delay doubles for each consecutive repeat pass
    requeue_delay: confloat(gt=0) = 1
    #: The maximum number of seconds to wait between repeat passes
    requeue_max_delay: confloat(gt=0) = 60


settings = Configuration()
