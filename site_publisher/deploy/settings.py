"""Typed settings models for each deployment target."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_MODEL_CONFIG = ConfigDict(extra="ignore", str_strip_whitespace=True, coerce_numbers_to_str=True)
_SECRET = {"widget": "password"}

GIT_PLATFORMS = {
    "gitlab": "GitLab",
    "github": "GitHub",
    "gitea": "Gitea",
    "bitbucket": "Bitbucket",
}

AWS_REGIONS = {
    "us-east-1": "US East (N. Virginia)",
    "us-east-2": "US East (Ohio)",
    "us-west-1": "US West (N. California)",
    "us-west-2": "US West (Oregon)",
    "eu-west-1": "EU (Ireland)",
    "eu-west-2": "EU (London)",
    "eu-west-3": "EU (Paris)",
    "eu-central-1": "EU (Frankfurt)",
    "ap-northeast-1": "Asia Pacific (Tokyo)",
    "ap-southeast-1": "Asia Pacific (Singapore)",
}


class GitLabTrigger(BaseModel):
    """GitLab pipeline trigger credentials."""

    model_config = _MODEL_CONFIG

    url: str = Field(
        "", title="GitLab URL", json_schema_extra={"placeholder": "https://gitlab.com"}
    )
    project_id: str = Field("", title="GitLab Project ID")
    trigger_token: str = Field("", title="Pipeline Trigger Token", json_schema_extra=_SECRET)
    ref: str = Field("", title="Pipeline Ref", description="Defaults to the deploy branch")

    def is_complete(self) -> bool:
        return bool(self.url and self.project_id and self.trigger_token)


class GitHubDispatch(BaseModel):
    """GitHub Actions workflow_dispatch settings."""

    model_config = _MODEL_CONFIG

    repo: str = Field(
        "", title="GitHub Repository", json_schema_extra={"placeholder": "owner/name"}
    )
    token: str = Field("", title="GitHub Token", json_schema_extra=_SECRET)
    workflow: str = Field("deploy.yml", title="Workflow File")

    def is_complete(self) -> bool:
        return bool(self.repo and self.token and self.workflow)


class GitSettings(BaseModel):
    """Settings for pushing the working copy to trigger CI/CD."""

    model_config = _MODEL_CONFIG

    platform: Literal["gitlab", "github", "gitea", "bitbucket"] = Field(
        "gitlab", title="Git Platform", json_schema_extra={"options": GIT_PLATFORMS}
    )
    remote: str = Field("origin", title="Remote Name", json_schema_extra={"placeholder": "origin"})
    branch: str = Field(
        "main", title="Branch", json_schema_extra={"placeholder": "main", "required": True}
    )
    auto_commit: bool = Field(False, title="Auto-commit on save")
    trigger_pipeline: bool = Field(False, title="Trigger CI/CD pipeline on push")
    commit_template: str = Field(
        "content: Update - {date}",
        title="Commit Message Template",
        description="Use {date}, {time}, {action} placeholders",
    )
    gitlab: GitLabTrigger = Field(default_factory=GitLabTrigger)
    github: GitHubDispatch = Field(default_factory=GitHubDispatch)


class RsyncSettings(BaseModel):
    """Settings for mirroring the artifact over SSH."""

    model_config = _MODEL_CONFIG

    host: str = Field(
        "", title="Host", json_schema_extra={"placeholder": "server.example.com", "required": True}
    )
    user: str = Field(
        "", title="Username", json_schema_extra={"placeholder": "deploy", "required": True}
    )
    path: str = Field(
        "",
        title="Remote Path",
        json_schema_extra={"placeholder": "/var/www/mysite", "required": True},
    )
    port: int = Field(22, title="SSH Port", ge=1, le=65535)
    key_path: str = Field(
        "",
        title="SSH Key Path",
        description="Path to private key file",
        json_schema_extra={"placeholder": "~/.ssh/id_rsa"},
    )
    delete_extraneous: bool = Field(
        False,
        title="Delete remote files missing locally",
        description="Passes --delete to rsync, removing server files absent from the build",
    )
    exclude: list[str] = Field(default_factory=list, title="Exclude Patterns")

    @field_validator("exclude", mode="before")
    @classmethod
    def _split_exclude(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class S3Settings(BaseModel):
    """Settings for syncing the artifact to an S3 bucket."""

    model_config = _MODEL_CONFIG

    bucket: str = Field("", title="S3 Bucket Name", json_schema_extra={"required": True})
    region: str = Field(
        "us-east-1",
        title="AWS Region",
        json_schema_extra={"options": AWS_REGIONS, "required": True},
    )
    access_key: str = Field(
        "",
        title="AWS Access Key ID",
        description="Leave empty to use AWS CLI credentials or IAM role",
    )
    secret_key: str = Field("", title="AWS Secret Access Key", json_schema_extra=_SECRET)
    cloudfront_id: str = Field(
        "",
        title="CloudFront Distribution ID (optional)",
        description="For cache invalidation after deploy",
    )
    cache_control: str = Field("max-age=31536000", title="Cache-Control Header")
    delete_removed: bool = Field(
        True,
        title="Delete removed files from S3",
        description="Passes --delete to aws s3 sync",
    )


class NetlifySettings(BaseModel):
    """Settings for Netlify direct upload or build hook."""

    model_config = _MODEL_CONFIG

    site_id: str = Field(
        "",
        title="Site ID",
        description="Found in Site settings > General > Site details",
        json_schema_extra={"placeholder": "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"},
    )
    auth_token: str = Field(
        "",
        title="Personal Access Token",
        description="Generate at User settings > Applications > Personal access tokens",
        json_schema_extra={"widget": "password"},
    )
    deploy_hook: str = Field(
        "",
        title="Deploy Hook URL (alternative)",
        description="Found in Site settings > Build & deploy > Build hooks",
        json_schema_extra={"placeholder": "https://api.netlify.com/build_hooks/..."},
    )
    production: bool = Field(True, title="Deploy to production")


class VercelSettings(BaseModel):
    """Settings for Vercel file-manifest deployments."""

    model_config = _MODEL_CONFIG

    token: str = Field(
        "",
        title="Vercel Token",
        description="Generate at vercel.com/account/tokens",
        json_schema_extra={"widget": "password", "required": True},
    )
    project_id: str = Field(
        "",
        title="Project ID",
        description="Found in Project Settings > General",
        json_schema_extra={"required": True},
    )
    team_id: str = Field("", title="Team ID (optional)", description="Required for team projects")
    project_name: str = Field(
        "site-publisher", title="Project Name", json_schema_extra={"placeholder": "my-site"}
    )
    production: bool = Field(False, title="Deploy to production by default")


class CloudflareSettings(BaseModel):
    """Settings for Cloudflare Pages direct upload."""

    model_config = _MODEL_CONFIG

    account_id: str = Field(
        "",
        title="Account ID",
        description="Found in Cloudflare dashboard URL or Account Home",
        json_schema_extra={"required": True},
    )
    project_name: str = Field(
        "",
        title="Project Name",
        description="Your Pages project name",
        json_schema_extra={"required": True},
    )
    api_token: str = Field(
        "",
        title="API Token",
        description="Create at My Profile > API Tokens with Pages permissions",
        json_schema_extra={"widget": "password", "required": True},
    )
    production_branch: str = Field("main", title="Production Branch")
