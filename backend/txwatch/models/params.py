"""
Transaction parameter schemas.

One pydantic model per transaction kind, matching the request bodies the
gateway build endpoints accept.
"""

from pydantic import BaseModel, Field, ValidationError
from typing import Optional, List, Tuple, Dict, Any, Type, Union

from txwatch.errors import InvalidParametersError
from txwatch.transactions.catalog import TransactionType

def _alias():
    return Field(..., min_length=1, max_length=31)

def _policy_id():
    # course_id, project_id, contributor_state_id
    return Field(..., min_length=56, max_length=56)

def _hash():
    # slt_hash, task_hash
    return Field(..., min_length=64, max_length=64)

def _short_text():
    return Field(..., max_length=140)

class WalletData(BaseModel):
    used_addresses: List[str]
    change_address: str

Value = List[Tuple[str, int]]

class TxParamsBase(BaseModel):
    alias: str = _alias()

class _InitiatorParams(TxParamsBase):
    initiator_data: Optional[WalletData] = None

# Global

class AccessTokenMintParams(TxParamsBase):
    initiator_data: str = Field(..., min_length=1)  # bech32 address

class AccessTokenClaimParams(TxParamsBase):
    pass

# Instance

class CourseCreateParams(_InitiatorParams):
    teachers: List[str]

class ProjectCreateParams(_InitiatorParams):
    managers: List[str]
    course_prereqs: List[Tuple[str, List[str]]]

# Course

class TeachersManageParams(_InitiatorParams):
    course_id: str = _policy_id()
    teachers_to_add: List[str]
    teachers_to_remove: List[str]

class ModuleToAdd(BaseModel):
    slts: List[str]
    allowed_student_state_ids: List[str]
    prereq_slt_hashes: List[str]

class ModuleToUpdate(BaseModel):
    slt_hash: str = _hash()
    allowed_student_state_ids: List[str]
    prereq_slt_hashes: List[str]

class ModulesManageParams(_InitiatorParams):
    course_id: str = _policy_id()
    modules_to_add: List[ModuleToAdd]
    modules_to_update: List[ModuleToUpdate]
    modules_to_remove: List[str]

class Decision(BaseModel):
    alias: str = _alias()
    outcome: str  # "accept", "refuse", "deny"

class AssignmentsAssessParams(_InitiatorParams):
    course_id: str = _policy_id()
    assignment_decisions: List[Decision]

class AssignmentCommitParams(_InitiatorParams):
    course_id: str = _policy_id()
    slt_hash: str = _hash()
    assignment_info: str = _short_text()

class AssignmentUpdateParams(_InitiatorParams):
    course_id: str = _policy_id()
    assignment_info: str = _short_text()

class CourseCredentialClaimParams(_InitiatorParams):
    course_id: str = _policy_id()

# Project

class ManagersManageParams(_InitiatorParams):
    project_id: str = _policy_id()
    managers_to_add: List[str]
    managers_to_remove: List[str]

class BlacklistManageParams(_InitiatorParams):
    project_id: str = _policy_id()
    aliases_to_add: List[str]
    aliases_to_remove: List[str]

class TaskSpec(BaseModel):
    project_content: str = _short_text()
    expiration_posix: int
    lovelace_amount: int
    native_assets: Value

class TasksManageParams(_InitiatorParams):
    project_id: str = _policy_id()
    contributor_state_id: str = _policy_id()
    tasks_to_add: List[TaskSpec]
    tasks_to_remove: List[TaskSpec]
    deposit_value: Value

class TasksAssessParams(_InitiatorParams):
    project_id: str = _policy_id()
    contributor_state_id: str = _policy_id()
    task_decisions: List[Decision]

class TaskCommitParams(_InitiatorParams):
    project_id: str = _policy_id()
    contributor_state_id: str = _policy_id()
    task_hash: str = _hash()
    task_info: str = _short_text()
    fee_tier: Optional[str] = None

class TaskActionParams(_InitiatorParams):
    project_id: str = _policy_id()
    contributor_state_id: str = _policy_id()
    task_hash: str = _hash()
    project_info: str = _short_text()

class ProjectCredentialClaimParams(_InitiatorParams):
    project_id: str = _policy_id()
    contributor_state_id: str = _policy_id()
    fee_tier: Optional[str] = None

class TreasuryAddFundsParams(_InitiatorParams):
    project_id: str = _policy_id()
    deposit_value: Value

T = TransactionType

TX_PARAM_SCHEMAS: Dict[TransactionType, Type[BaseModel]] = {
    T.GLOBAL_GENERAL_ACCESS_TOKEN_MINT: AccessTokenMintParams,
    T.GLOBAL_USER_ACCESS_TOKEN_CLAIM: AccessTokenClaimParams,
    T.INSTANCE_COURSE_CREATE: CourseCreateParams,
    T.INSTANCE_PROJECT_CREATE: ProjectCreateParams,
    T.COURSE_OWNER_TEACHERS_MANAGE: TeachersManageParams,
    T.COURSE_TEACHER_MODULES_MANAGE: ModulesManageParams,
    T.COURSE_TEACHER_ASSIGNMENTS_ASSESS: AssignmentsAssessParams,
    T.COURSE_STUDENT_ASSIGNMENT_COMMIT: AssignmentCommitParams,
    T.COURSE_STUDENT_ASSIGNMENT_UPDATE: AssignmentUpdateParams,
    T.COURSE_STUDENT_CREDENTIAL_CLAIM: CourseCredentialClaimParams,
    T.PROJECT_OWNER_MANAGERS_MANAGE: ManagersManageParams,
    T.PROJECT_OWNER_BLACKLIST_MANAGE: BlacklistManageParams,
    T.PROJECT_MANAGER_TASKS_MANAGE: TasksManageParams,
    T.PROJECT_MANAGER_TASKS_ASSESS: TasksAssessParams,
    T.PROJECT_CONTRIBUTOR_TASK_COMMIT: TaskCommitParams,
    T.PROJECT_CONTRIBUTOR_TASK_ACTION: TaskActionParams,
    T.PROJECT_CONTRIBUTOR_CREDENTIAL_CLAIM: ProjectCredentialClaimParams,
    T.PROJECT_USER_TREASURY_ADD_FUNDS: TreasuryAddFundsParams,
}

def validate_tx_params(tx_type: Union[TransactionType, str], params: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Validate params for a transaction kind and return the JSON body to send.

    Raises InvalidParametersError with one "<field path>: <message>" entry per
    violated field.
    """
    schema = TX_PARAM_SCHEMAS[TransactionType(tx_type)]
    if isinstance(params, BaseModel):
        params = params.model_dump(exclude_none=True)
    try:
        validated = schema.model_validate(params)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise InvalidParametersError(errors)
    return validated.model_dump(mode="json", exclude_none=True)
