"""Constants for the MultiClusterHub Operator."""

# API Group
API_GROUP = "operator.open-cluster-management.io"
API_GROUP_VERSION = f"{API_GROUP}/v1"

# Resource Kinds
KIND_HUB = "MultiClusterHub"
PLURAL_HUB = "multiclusterhubs"
KIND_ENGINE = "MultiClusterEngine"
ENGINE_API_VERSION = "multicluster.openshift.io/v1"
KIND_MANAGED_CLUSTER = "ManagedCluster"
MANAGED_CLUSTER_API_VERSION = "cluster.open-cluster-management.io/v1"
APPSUB_API_VERSION = "apps.open-cluster-management.io/v1"
KIND_SUBSCRIPTION = "Subscription"
KIND_CHANNEL = "Channel"
KIND_HELM_RELEASE = "HelmRelease"
HELM_RELEASE_API_VERSION = "apps.open-cluster-management.io/v1"
KIND_CLUSTER_VERSION = "ClusterVersion"
CONFIG_API_VERSION = "config.openshift.io/v1"
KIND_CONSOLE = "Console"
CONSOLE_OPERATOR_API_VERSION = "operator.openshift.io/v1"
CRD_API_VERSION = "apiextensions.k8s.io/v1"
KIND_CRD = "CustomResourceDefinition"

# Labels
LABEL_INSTALLER_NAME = "installer.name"
LABEL_INSTALLER_NAMESPACE = "installer.namespace"

# Annotations
ANNOTATION_PREFIX = "installer.open-cluster-management.io"
ANNOTATION_PAUSE = f"{ANNOTATION_PREFIX}/pause"
ANNOTATION_IMAGE_REPO = f"{ANNOTATION_PREFIX}/image-repository"
ANNOTATION_IMAGE_OVERRIDES_CM = f"{ANNOTATION_PREFIX}/image-overrides-configmap"
ANNOTATION_OADP_SUBSCRIPTION = f"{ANNOTATION_PREFIX}/oadp-subscription-spec"
ANNOTATION_ADOPTED_BY = f"{ANNOTATION_PREFIX}/adopted-by"

# Finalizers
FINALIZER = "finalizer.operator.open-cluster-management.io"

# Field Manager
FIELD_MANAGER = "multiclusterhub-operator"
CONTROLLER_NAME = "multiclusterhub-operator"

# Well-known names
LOCAL_CLUSTER_NAME = "local-cluster"
CONSOLE_PLUGIN_NAME = "acm"
ENGINE_DEFAULT_NAME = "multiclusterengine"
BACKUP_NAMESPACE = "open-cluster-management-backup"
IMAGE_MANIFEST_CM_PREFIX = "mch-image-manifest-"
TEMPLATES_KIND = "multiclusterhub"

# Availability tiers
HA_BASIC = "Basic"
HA_HIGH = "High"

# Components
COMPONENT_REPO = "multiclusterhub-repo"
COMPONENT_MANAGEMENT_INGRESS = "management-ingress"
COMPONENT_CONSOLE = "console"
COMPONENT_INSIGHTS = "insights"
COMPONENT_GRC = "grc"
COMPONENT_CLUSTER_LIFECYCLE = "cluster-lifecycle"
COMPONENT_VOLSYNC = "volsync"
COMPONENT_SEARCH = "search"
COMPONENT_CLUSTER_BACKUP = "cluster-backup"
COMPONENT_CLUSTER_PROXY_ADDON = "cluster-proxy-addon"

# Condition Types
COND_PROGRESSING = "Progressing"
COND_COMPLETE = "Complete"
COND_TERMINATING = "Terminating"
COND_BLOCKED = "Blocked"

# Condition Reasons
REASON_NEW_COMPONENT = "NewResourceCreated"
REASON_UPDATED_COMPONENT = "ResourceUpdated"
REASON_DEPLOY_FAILED = "FailedDeployingComponent"
REASON_OLD_COMPONENT_REMOVED = "OldResourceDeleted"
REASON_OLD_COMPONENT_NOT_REMOVED = "OldResourceDeleteFailed"
REASON_ALL_OLD_COMPONENTS_REMOVED = "AllOldResourcesDeleted"
REASON_CRD_RENDER = "FailedRenderingCRD"
REASON_RESOURCE_RENDER = "FailedRenderingResource"
REASON_PULL_SECRET = "PullSecretMissing"
REASON_DELETE_TIMESTAMP = "DeletionTimestampPresent"
REASON_PAUSED = "MCHPaused"
REASON_RESUMED = "MCHResumed"
REASON_RESOURCE_BLOCKED = "BlockingResourcesPresent"
REASON_COMPONENTS_AVAILABLE = "ComponentsAvailable"
REASON_COMPONENTS_UNAVAILABLE = "ComponentsUnavailable"

# Phases
PHASE_PENDING = "Pending"
PHASE_INSTALLING = "Installing"
PHASE_RUNNING = "Running"
PHASE_UPDATING = "Updating"
PHASE_PAUSED = "Paused"
PHASE_UNINSTALLING = "Uninstalling"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_COMPONENT_CREATED = "ComponentCreated"
EVENT_REASON_COMPONENT_UPDATED = "ComponentUpdated"
EVENT_REASON_COMPONENT_DELETED = "ComponentDeleted"
EVENT_REASON_BLOCKED = "UpgradeBlocked"
EVENT_REASON_FINALIZE_FAILED = "FinalizeFailed"
EVENT_REASON_FINALIZED = "Finalized"
