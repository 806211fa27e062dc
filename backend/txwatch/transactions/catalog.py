"""
Transaction catalog: static per-kind configuration.

Maps every transaction kind to the gateway endpoint that builds it, the
gateway-facing `tx_type` used for registration, the user-facing strings and
whether the gateway has to track the transaction after submission.
"""

from pydantic import BaseModel
from typing import Dict, Union
from enum import Enum
from loguru import logger

class TransactionType(str, Enum):
    # Global
    GLOBAL_GENERAL_ACCESS_TOKEN_MINT = "GLOBAL_GENERAL_ACCESS_TOKEN_MINT"
    GLOBAL_USER_ACCESS_TOKEN_CLAIM = "GLOBAL_USER_ACCESS_TOKEN_CLAIM"
    # Instance
    INSTANCE_COURSE_CREATE = "INSTANCE_COURSE_CREATE"
    INSTANCE_PROJECT_CREATE = "INSTANCE_PROJECT_CREATE"
    # Course
    COURSE_OWNER_TEACHERS_MANAGE = "COURSE_OWNER_TEACHERS_MANAGE"
    COURSE_TEACHER_MODULES_MANAGE = "COURSE_TEACHER_MODULES_MANAGE"
    COURSE_TEACHER_ASSIGNMENTS_ASSESS = "COURSE_TEACHER_ASSIGNMENTS_ASSESS"
    COURSE_STUDENT_ASSIGNMENT_COMMIT = "COURSE_STUDENT_ASSIGNMENT_COMMIT"
    COURSE_STUDENT_ASSIGNMENT_UPDATE = "COURSE_STUDENT_ASSIGNMENT_UPDATE"
    COURSE_STUDENT_CREDENTIAL_CLAIM = "COURSE_STUDENT_CREDENTIAL_CLAIM"
    # Project
    PROJECT_OWNER_MANAGERS_MANAGE = "PROJECT_OWNER_MANAGERS_MANAGE"
    PROJECT_OWNER_BLACKLIST_MANAGE = "PROJECT_OWNER_BLACKLIST_MANAGE"
    PROJECT_MANAGER_TASKS_MANAGE = "PROJECT_MANAGER_TASKS_MANAGE"
    PROJECT_MANAGER_TASKS_ASSESS = "PROJECT_MANAGER_TASKS_ASSESS"
    PROJECT_CONTRIBUTOR_TASK_COMMIT = "PROJECT_CONTRIBUTOR_TASK_COMMIT"
    PROJECT_CONTRIBUTOR_TASK_ACTION = "PROJECT_CONTRIBUTOR_TASK_ACTION"
    PROJECT_CONTRIBUTOR_CREDENTIAL_CLAIM = "PROJECT_CONTRIBUTOR_CREDENTIAL_CLAIM"
    PROJECT_USER_TREASURY_ADD_FUNDS = "PROJECT_USER_TREASURY_ADD_FUNDS"

class TransactionConfig(BaseModel):
    endpoint: str
    gateway_tx_type: str
    title: str
    success_info: str
    # Register with the gateway so it applies DB updates after confirmation
    requires_db_update: bool = True
    # Register for confirmation tracking even when there is nothing to update
    requires_onchain_confirmation: bool = False

    @property
    def requires_tracking(self) -> bool:
        return self.requires_db_update or self.requires_onchain_confirmation

T = TransactionType

TRANSACTION_CATALOG: Dict[TransactionType, TransactionConfig] = {
    T.GLOBAL_GENERAL_ACCESS_TOKEN_MINT: TransactionConfig(
        endpoint="/tx/global/user/access-token/mint",
        gateway_tx_type="access_token_mint",
        title="Create Access Token",
        success_info="Access Token Created!",
        requires_db_update=False,
        requires_onchain_confirmation=True,
    ),
    T.GLOBAL_USER_ACCESS_TOKEN_CLAIM: TransactionConfig(
        endpoint="/tx/global/user/access-token/claim",
        gateway_tx_type="access_token_mint",
        title="Claim V2 Access Token",
        success_info="V2 access token claimed successfully!",
        requires_db_update=False,
        requires_onchain_confirmation=True,
    ),
    T.INSTANCE_COURSE_CREATE: TransactionConfig(
        endpoint="/tx/instance/owner/course/create",
        gateway_tx_type="course_create",
        title="Create Course",
        success_info="Course created successfully!",
    ),
    T.INSTANCE_PROJECT_CREATE: TransactionConfig(
        endpoint="/tx/instance/owner/project/create",
        gateway_tx_type="project_create",
        title="Create Project",
        success_info="Project created successfully!",
    ),
    T.COURSE_OWNER_TEACHERS_MANAGE: TransactionConfig(
        endpoint="/tx/course/owner/teachers/manage",
        gateway_tx_type="teachers_update",
        title="Manage Course Teachers",
        success_info="Course teachers updated successfully!",
    ),
    T.COURSE_TEACHER_MODULES_MANAGE: TransactionConfig(
        endpoint="/tx/course/teacher/modules/manage",
        gateway_tx_type="modules_manage",
        title="Manage Course Modules",
        success_info="Course modules managed successfully!",
    ),
    T.COURSE_TEACHER_ASSIGNMENTS_ASSESS: TransactionConfig(
        endpoint="/tx/course/teacher/assignments/assess",
        gateway_tx_type="assessment_assess",
        title="Assess Student Assignment",
        success_info="Assessment Submitted!",
    ),
    T.COURSE_STUDENT_ASSIGNMENT_COMMIT: TransactionConfig(
        endpoint="/tx/course/student/assignment/commit",
        gateway_tx_type="assignment_submit",
        title="Submit Assignment",
        success_info="Assignment Submitted!",
    ),
    T.COURSE_STUDENT_ASSIGNMENT_UPDATE: TransactionConfig(
        endpoint="/tx/course/student/assignment/update",
        gateway_tx_type="assignment_submit",
        title="Update Assignment",
        success_info="Assignment Updated!",
    ),
    T.COURSE_STUDENT_CREDENTIAL_CLAIM: TransactionConfig(
        endpoint="/tx/course/student/credential/claim",
        gateway_tx_type="credential_claim",
        title="Claim Course Credential",
        success_info="Credential claimed successfully!",
    ),
    T.PROJECT_OWNER_MANAGERS_MANAGE: TransactionConfig(
        endpoint="/tx/project/owner/managers/manage",
        gateway_tx_type="managers_manage",
        title="Manage Project Managers",
        success_info="Project managers updated successfully!",
    ),
    T.PROJECT_OWNER_BLACKLIST_MANAGE: TransactionConfig(
        endpoint="/tx/project/owner/contributor-blacklist/manage",
        gateway_tx_type="blacklist_update",
        title="Manage Contributor Blacklist",
        success_info="Contributor blacklist updated successfully!",
    ),
    T.PROJECT_MANAGER_TASKS_MANAGE: TransactionConfig(
        endpoint="/tx/project/manager/tasks/manage",
        gateway_tx_type="tasks_manage",
        title="Manage Project Tasks",
        success_info="Project tasks managed successfully!",
    ),
    T.PROJECT_MANAGER_TASKS_ASSESS: TransactionConfig(
        endpoint="/tx/project/manager/tasks/assess",
        gateway_tx_type="task_assess",
        title="Assess Task Submission",
        success_info="Task assessment submitted successfully!",
    ),
    T.PROJECT_CONTRIBUTOR_TASK_COMMIT: TransactionConfig(
        endpoint="/tx/project/contributor/task/commit",
        gateway_tx_type="project_join",
        title="Commit to New Task",
        success_info="Successfully committed to task!",
    ),
    T.PROJECT_CONTRIBUTOR_TASK_ACTION: TransactionConfig(
        endpoint="/tx/project/contributor/task/action",
        gateway_tx_type="task_submit",
        title="Submit Evidence",
        success_info="Task action completed successfully!",
    ),
    T.PROJECT_CONTRIBUTOR_CREDENTIAL_CLAIM: TransactionConfig(
        endpoint="/tx/project/contributor/credential/claim",
        gateway_tx_type="project_credential_claim",
        title="Claim Project Credentials",
        success_info="Credentials claimed successfully!",
    ),
    T.PROJECT_USER_TREASURY_ADD_FUNDS: TransactionConfig(
        endpoint="/tx/project/user/treasury/add-funds",
        gateway_tx_type="treasury_fund",
        title="Add Funds to Project Treasury",
        success_info="Funds added to treasury successfully!",
    ),
}

def get_transaction_config(tx_type: Union[TransactionType, str]) -> TransactionConfig:
    """Look up a kind; raises ValueError for kinds outside the catalog"""
    return TRANSACTION_CATALOG[TransactionType(tx_type)]

def is_transaction_type(value: str) -> bool:
    return value in TransactionType.__members__

def get_gateway_tx_type(tx_type: Union[TransactionType, str]) -> str:
    """Gateway-facing tx_type for a kind, falling back to the lowercased kind"""
    try:
        return get_transaction_config(tx_type).gateway_tx_type
    except (KeyError, ValueError):
        logger.warning(f"⚠️ Unknown transaction type: {tx_type}, using as-is")
        return str(tx_type).lower()
