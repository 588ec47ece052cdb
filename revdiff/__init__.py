from revdiff.backend import Backend, BackendInvocationError, GitBackend
from revdiff.config import Config, ConfigError, RevdiffError, load_config
from revdiff.engine import compute_change_set, compute_revision_breakdown
from revdiff.models import (
    HEAD,
    ChangeSet,
    ChangeSetWarning,
    ComparisonTarget,
    FileChangeRecord,
    Revision,
    Status,
)
from revdiff.selection import Selection, SelectionSnapshot
from revdiff.session import ComparisonSession
from revdiff.working_tree import WorkingChanges, working_changes
