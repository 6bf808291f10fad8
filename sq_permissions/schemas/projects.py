"""
Pydantic schemas for SonarQube web API payloads.

Unknown keys in responses are ignored.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PagingInfo(BaseModel):
    """Paging block of a search response."""
    model_config = ConfigDict(populate_by_name=True)

    page_index: int = Field(alias="pageIndex", ge=1)
    page_size: int = Field(alias="pageSize", ge=1)
    total: int = Field(ge=0)


class Project(BaseModel):
    """A project as listed by api/projects/search. Identity is the key."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    key: str
    name: str
    qualifier: str
    visibility: str
    last_analysis_date: str | None = Field(default=None, alias="lastAnalysisDate")
    revision: str | None = None


class ProjectsSearch(BaseModel):
    """Response model for api/projects/search."""
    paging: PagingInfo
    components: list[Project] = []


class PermissionTemplate(BaseModel):
    """
    Entry of a permission template search.

    Custom templates carry their id as "id", default templates as "templateId".
    """
    template_id: str = Field(
        validation_alias=AliasChoices("templateId", "id", "template_id")
    )


class PermissionTemplateSearch(BaseModel):
    """Response model for api/permissions/search_templates."""
    model_config = ConfigDict(populate_by_name=True)

    permission_templates: list[PermissionTemplate] = Field(
        default_factory=list, alias="permissionTemplates"
    )
    default_templates: list[PermissionTemplate] = Field(
        default_factory=list, alias="defaultTemplates"
    )

    def template_ids(self) -> set[str]:
        return {
            t.template_id
            for t in self.permission_templates + self.default_templates
        }


class UpdateResult(BaseModel):
    """Summary of a completed run."""
    total_projects: int
    total_pages: int
    privatize_failures: int
    template_failures: int
