"""Image build options.

BuildOptions is the configuration bundle for one image build. Every field is
optional and carries its default here rather than at each call site.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BuildOptions(BaseModel):
    """Options for building an image from a plan.

    Attributes:
        name: Image name (also the first tag).
        out_dir: Write the build context here instead of building.
        print_dockerfile: Only render the Dockerfile.
        tags: Additional image tags.
        labels: Image labels as ``key=value``.
        quiet: Suppress build output; defaults to ``not verbose``.
        cache_key: Identifier the build cache mounts are keyed by.
        no_cache: Disable layer and mount caching.
        inline_cache: Embed cache metadata in the image.
        cache_from: Image to reuse cached layers from.
        platform: Target platforms.
        current_dir: Build in place instead of in a copied context.
        no_error_without_start: Allow building without a start command.
        incremental_cache_image: Prior image seeding incremental builds.
        cpu_quota: CPU quota for build containers.
        memory: Memory limit for build containers.
        verbose: Verbose build output.
        docker_host: Remote daemon endpoint.
        docker_tls_verify: TLS verification setting for the daemon.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, description="Image name")
    out_dir: str | None = Field(default=None, description="Output directory")
    print_dockerfile: bool = Field(default=False, description="Only print Dockerfile")
    tags: list[str] = Field(default_factory=list, description="Image tags")
    labels: list[str] = Field(default_factory=list, description="Image labels")
    quiet: bool | None = Field(default=None, description="Quiet output")
    cache_key: str | None = Field(default=None, description="Cache key")
    no_cache: bool = Field(default=False, description="Disable caching")
    inline_cache: bool = Field(default=True, description="Inline cache metadata")
    cache_from: str | None = Field(default=None, description="Cache source image")
    platform: list[str] = Field(default_factory=list, description="Target platforms")
    current_dir: bool = Field(default=True, description="Build in place")
    no_error_without_start: bool = Field(
        default=False, description="Allow missing start command"
    )
    incremental_cache_image: str | None = Field(
        default=None, description="Incremental cache image"
    )
    cpu_quota: str | None = Field(default=None, description="CPU quota")
    memory: str | None = Field(default=None, description="Memory limit")
    verbose: bool = Field(default=False, description="Verbose output")
    docker_host: str | None = Field(default=None, description="Docker host")
    docker_tls_verify: str | None = Field(default=None, description="Docker TLS verify")

    @field_validator("labels")
    @classmethod
    def validate_labels(cls, v: list[str]) -> list[str]:
        """Validate labels are ``key=value`` pairs."""
        for label in v:
            key, sep, _ = label.partition("=")
            if not sep or not key.strip():
                raise ValueError(f"labels must be 'key=value', got '{label}'")
        return v

    @field_validator("tags", "platform")
    @classmethod
    def validate_string_list(cls, v: list[str]) -> list[str]:
        """Validate list entries are non-empty without whitespace."""
        for item in v:
            if not item or any(c.isspace() for c in item):
                raise ValueError(
                    f"list items must be non-empty without whitespace, got '{item}'"
                )
        return v

    @property
    def effective_quiet(self) -> bool:
        """Quiet setting, falling back to the negation of verbose.

        Verbose output and quiet output are never both honored: an explicit
        ``verbose=True`` always yields ``False``.
        """
        if self.verbose:
            return False
        if self.quiet is None:
            return True
        return self.quiet

    @property
    def use_cache(self) -> bool:
        return not self.no_cache


__all__ = ["BuildOptions"]
