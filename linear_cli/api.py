# linear_cli/api.py

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
from gql import Client, gql
from gql.transport.aiohttp import AIOHTTPTransport
from gql.transport.exceptions import (
    TransportError,
    TransportQueryError,
    TransportServerError,
)

from .config import (
    ISSUES_PAGE_SIZE,
    LABELS_PAGE_SIZE,
    LINEAR_API_URL,
    MAX_CONCURRENT_REQUESTS,
    PROJECTS_PAGE_SIZE,
    RELATIONS_PAGE_SIZE,
)
from .exceptions import LinearAPIError
from .logger import logger
from .models import (
    LinearIssue,
    LinearLabel,
    LinearProject,
    LinearTeam,
    LinearUser,
    LinearWorkflowState,
)

ISSUE_LIST_FIELDS = """
    id
    identifier
    title
    priority
    sortOrder
    completedAt
    state { name type }
    project { id name }
    projectMilestone { id name }
    assignee { id name }
    labels { nodes { name } }
    relations(first: %d) {
      nodes {
        type
        relatedIssue { identifier state { type } }
      }
    }
""" % RELATIONS_PAGE_SIZE

CHILDREN_FIELDS = "children { nodes { identifier title state { name } } }"


class LinearAPI:
    def __init__(self, api_key: str, url: str = LINEAR_API_URL):
        self.url = url
        self.token = api_key
        self.client = None
        self.session = None
        self.semaphore = asyncio.Semaphore(MAX_CONCURRENT_REQUESTS)

    async def __aenter__(self):
        transport = AIOHTTPTransport(
            url=self.url, headers={"Authorization": self.token}
        )
        self.client = Client(transport=transport, fetch_schema_from_transport=False)
        self.session = await self.client.connect_async()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.client.close_async()

    async def execute_query(self, query: str, variables: Dict = None) -> Dict:
        async with self.semaphore:
            logger.debug(f"GraphQL request: {' '.join(query.split())[:120]}")
            try:
                return await self.session.execute(
                    gql(query), variable_values=variables or {}
                )
            except TransportQueryError as e:
                message = str(e)
                if e.errors:
                    message = e.errors[0].get("message", message)
                logger.debug(f"API error: {message}")
                raise LinearAPIError(f"API error: {message}", errors=e.errors)
            except TransportServerError as e:
                raise LinearAPIError(f"HTTP error: {e.code} {str(e)}")
            except (TransportError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise LinearAPIError(f"Network error: {str(e) or type(e).__name__}")

    # Identity and teams

    async def get_viewer(self) -> LinearUser:
        result = await self.execute_query("query { viewer { id name email } }")
        return LinearUser.from_node(result["viewer"])

    async def get_teams(self) -> List[LinearTeam]:
        result = await self.execute_query("query { teams { nodes { id key name } } }")
        return [LinearTeam.from_node(node) for node in result["teams"]["nodes"]]

    async def get_team_id(self, team_key: str) -> Optional[str]:
        query = """
        query GetTeam($teamId: String!) {
          team(id: $teamId) { id }
        }
        """
        result = await self.execute_query(query, {"teamId": team_key})
        team = result.get("team")
        return team["id"] if team else None

    async def create_team(self, name: str, key: str) -> Dict:
        query = """
        mutation CreateTeam($input: TeamCreateInput!) {
          teamCreate(input: $input) {
            success
            team { id key name }
          }
        }
        """
        result = await self.execute_query(query, {"input": {"name": name, "key": key}})
        return result["teamCreate"]

    async def get_workflow_states(self, team_key: str) -> List[LinearWorkflowState]:
        query = """
        query GetWorkflowStates($teamId: String!) {
          team(id: $teamId) {
            states {
              nodes {
                id
                name
                type
              }
            }
          }
        }
        """
        result = await self.execute_query(query, {"teamId": team_key})
        team = result.get("team") or {}
        return [
            LinearWorkflowState.from_node(node)
            for node in (team.get("states") or {}).get("nodes", [])
        ]

    # Issues

    async def get_issues(
        self, team_key: str, first: int = ISSUES_PAGE_SIZE
    ) -> List[LinearIssue]:
        query = """
        query GetIssues($teamId: String!, $first: Int!) {
          team(id: $teamId) {
            issues(first: $first) {
              nodes {
                %s
              }
            }
          }
        }
        """ % ISSUE_LIST_FIELDS
        result = await self.execute_query(query, {"teamId": team_key, "first": first})
        team = result.get("team") or {}
        nodes = (team.get("issues") or {}).get("nodes", [])
        return [LinearIssue.from_node(node) for node in nodes]

    async def get_issue(self, issue_id: str) -> Optional[LinearIssue]:
        """
        Fetch one issue with its parent chain (three levels), children,
        relations and comments.
        """
        query = """
        query GetIssue($id: String!) {
          issue(id: $id) {
            id
            identifier
            title
            description
            url
            priority
            state { name type }
            project { id name }
            assignee { id name }
            labels { nodes { name } }
            parent {
              identifier
              title
              description
              %(children)s
              parent {
                identifier
                title
                %(children)s
                parent {
                  identifier
                  title
                }
              }
            }
            %(children)s
            relations(first: %(relations)d) {
              nodes {
                type
                relatedIssue { identifier title state { name type } }
              }
            }
            inverseRelations(first: %(relations)d) {
              nodes {
                type
                issue { identifier title state { name type } }
              }
            }
            comments { nodes { body createdAt user { name } } }
          }
        }
        """ % {"children": CHILDREN_FIELDS, "relations": RELATIONS_PAGE_SIZE}
        result = await self.execute_query(query, {"id": issue_id})
        node = result.get("issue")
        return LinearIssue.from_node(node) if node else None

    async def get_issue_description(self, issue_id: str) -> str:
        query = """
        query GetIssueDescription($id: String!) {
          issue(id: $id) { description }
        }
        """
        result = await self.execute_query(query, {"id": issue_id})
        issue = result.get("issue") or {}
        return issue.get("description") or ""

    async def create_issue(self, data: Dict[str, Any]) -> Dict:
        query = """
        mutation CreateIssue($input: IssueCreateInput!) {
          issueCreate(input: $input) {
            success
            issue { identifier title url estimate }
          }
        }
        """
        result = await self.execute_query(query, {"input": data})
        return result["issueCreate"]

    async def update_issue(self, issue_id: str, data: Dict[str, Any]) -> Dict:
        query = """
        mutation UpdateIssue($id: String!, $input: IssueUpdateInput!) {
          issueUpdate(id: $id, input: $input) {
            success
            issue {
              identifier
              title
              state { name }
            }
          }
        }
        """
        variables = {"id": issue_id, "input": data}
        result = await self.execute_query(query, variables)
        return result["issueUpdate"]

    async def create_issue_relation(
        self, issue_id: str, related_issue_id: str, type: str = "blocks"
    ) -> Dict:
        query = """
        mutation CreateIssueRelation($input: IssueRelationCreateInput!) {
          issueRelationCreate(input: $input) { success }
        }
        """
        variables = {
            "input": {
                "issueId": issue_id,
                "relatedIssueId": related_issue_id,
                "type": type,
            }
        }
        result = await self.execute_query(query, variables)
        return result["issueRelationCreate"]

    async def create_comment(self, issue_id: str, body: str) -> Dict:
        query = """
        mutation CreateComment($input: CommentCreateInput!) {
          commentCreate(input: $input) { success }
        }
        """
        variables = {"input": {"issueId": issue_id, "body": body}}
        result = await self.execute_query(query, variables)
        return result["commentCreate"]

    # Projects and milestones

    async def get_projects(
        self, team_key: str, with_issues: bool = False
    ) -> List[LinearProject]:
        issues = "issues { nodes { identifier title state { name type } } }"
        query = """
        query GetProjects($teamId: String!, $first: Int!) {
          team(id: $teamId) {
            projects(first: $first) {
              nodes {
                id
                name
                description
                state
                progress
                priority
                sortOrder
                startDate
                targetDate
                projectMilestones {
                  nodes { id name description targetDate status sortOrder }
                }
                %s
              }
            }
          }
        }
        """ % (issues if with_issues else "")
        variables = {"teamId": team_key, "first": PROJECTS_PAGE_SIZE}
        result = await self.execute_query(query, variables)
        team = result.get("team") or {}
        nodes = (team.get("projects") or {}).get("nodes", [])
        return [LinearProject.from_node(node) for node in nodes]

    async def create_project(
        self, team_id: str, name: str, description: str = ""
    ) -> Dict:
        query = """
        mutation CreateProject($input: ProjectCreateInput!) {
          projectCreate(input: $input) {
            success
            project { id name url }
          }
        }
        """
        variables = {
            "input": {"teamIds": [team_id], "name": name, "description": description}
        }
        result = await self.execute_query(query, variables)
        return result["projectCreate"]

    async def update_project(self, project_id: str, data: Dict[str, Any]) -> Dict:
        query = """
        mutation UpdateProject($id: String!, $input: ProjectUpdateInput!) {
          projectUpdate(id: $id, input: $input) { success }
        }
        """
        result = await self.execute_query(query, {"id": project_id, "input": data})
        return result["projectUpdate"]

    async def create_milestone(self, data: Dict[str, Any]) -> Dict:
        query = """
        mutation CreateMilestone($input: ProjectMilestoneCreateInput!) {
          projectMilestoneCreate(input: $input) {
            success
            projectMilestone { id name }
          }
        }
        """
        result = await self.execute_query(query, {"input": data})
        return result["projectMilestoneCreate"]

    async def update_milestone(self, milestone_id: str, data: Dict[str, Any]) -> Dict:
        query = """
        mutation UpdateMilestone($id: String!, $input: ProjectMilestoneUpdateInput!) {
          projectMilestoneUpdate(id: $id, input: $input) { success }
        }
        """
        result = await self.execute_query(query, {"id": milestone_id, "input": data})
        return result["projectMilestoneUpdate"]

    # Labels

    async def get_labels(self, team_key: str) -> List[LinearLabel]:
        query = """
        query GetLabels($teamId: String!, $first: Int!) {
          team(id: $teamId) {
            labels(first: $first) {
              nodes { id name color description }
            }
          }
        }
        """
        variables = {"teamId": team_key, "first": LABELS_PAGE_SIZE}
        result = await self.execute_query(query, variables)
        team = result.get("team") or {}
        nodes = (team.get("labels") or {}).get("nodes", [])
        return [LinearLabel.from_node(node) for node in nodes]

    async def create_label(self, data: Dict[str, Any]) -> Dict:
        query = """
        mutation IssueLabelCreate($input: IssueLabelCreateInput!) {
          issueLabelCreate(input: $input) {
            success
            issueLabel { id name }
          }
        }
        """
        result = await self.execute_query(query, {"input": data})
        return result["issueLabelCreate"]
