from policy_admin.models.admin import Administrator
from policy_admin.models.base import Base
from policy_admin.models.policy import PolicyDocument

metadata = Base.metadata

__all__ = ["Administrator", "Base", "PolicyDocument", "metadata"]
