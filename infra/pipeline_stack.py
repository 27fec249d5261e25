"""
CDK Stack for the Planning Poker App

Deploys the delivery pipeline (GitHub -> CodeBuild -> S3) and the
CloudFront distribution that serves the built site from a private bucket.
"""

import logging

from aws_cdk import (
    Stack,
    Duration,
    RemovalPolicy,
    SecretValue,
    CfnOutput
)
from aws_cdk import (
    aws_cloudfront as cloudfront,
    aws_cloudfront_origins as origins,
    aws_codebuild as codebuild,
    aws_codepipeline as codepipeline,
    aws_codepipeline_actions as cpactions,
    aws_iam as iam,
    aws_s3 as s3
)
from constructs import Construct

from planning_poker_infra.config import PipelineConfig
from planning_poker_infra.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

GITHUB_TRIGGERS = {
    "poll": cpactions.GitHubTrigger.POLL,
    "webhook": cpactions.GitHubTrigger.WEBHOOK,
    "none": cpactions.GitHubTrigger.NONE,
}


class PlanningPokerAppStack(Stack):
    """Delivery pipeline and static hosting for the Planning Poker App."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: PipelineConfig,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        missing = config.missing_variables()
        if missing:
            raise ConfigurationError(
                f"Cannot build {construct_id} without: {', '.join(missing)}",
                missing=missing,
            )

        self.config = config
        # `environment` is taken by Stack
        self.env_name = config.environment

        self.source_output = codepipeline.Artifact()
        self.source_action = self._create_source_action()

        self.build_project = self._create_build_project()
        self.build_artifact = codepipeline.Artifact()
        self.build_action = self._create_build_action()

        self.site_bucket = self._create_site_bucket()
        self.origin_access_identity = self._create_origin_access_identity()

        self.deploy_action = cpactions.S3DeployAction(
            action_name="PlanningPokerAppDeployAction",
            bucket=self.site_bucket,
            input=self.build_artifact,
        )

        self.distribution = self._create_distribution()

        self.invalidation_project = None
        if config.hosting.invalidate_cache:
            self.invalidation_project = self._create_invalidation_project()

        self.pipeline = self._create_pipeline()

        self._create_outputs()

        logger.info(
            "Declared %s for %s/%s@%s (invalidate_cache=%s)",
            construct_id,
            config.source.owner,
            config.source.repo,
            config.source.branch,
            config.hosting.invalidate_cache,
        )

    def _create_source_action(self) -> cpactions.GitHubSourceAction:
        """Create the GitHub source action using the token stored in Secrets Manager."""
        source = self.config.source
        return cpactions.GitHubSourceAction(
            action_name="PlanningPokerAppGitHubAction",
            output=self.source_output,
            repo=source.repo,
            owner=source.owner,
            branch=source.branch,
            trigger=GITHUB_TRIGGERS[source.trigger],
            oauth_token=SecretValue.secrets_manager(
                source.secret_id,
                json_field=source.secret_json_field
            )
        )

    def _create_build_project(self) -> codebuild.PipelineProject:
        """Create the CodeBuild project; the buildspec lives in the app repository."""
        build = self.config.build
        return codebuild.PipelineProject(
            self, "PlanningPokerAppBuildProject",
            project_name=build.project_name,
            build_spec=codebuild.BuildSpec.from_source_filename(build.buildspec_filename),
            environment=codebuild.BuildEnvironment(
                build_image=getattr(codebuild.LinuxBuildImage, build.build_image)
            )
        )

    def _create_build_action(self) -> cpactions.CodeBuildAction:
        build = self.config.build
        return cpactions.CodeBuildAction(
            action_name="PlanningPokerAppBuildAction",
            input=self.source_output,
            project=self.build_project,
            outputs=[self.build_artifact],
            environment_variables={
                "REACT_APP_WEB_SOCKET_URL": codebuild.BuildEnvironmentVariable(
                    value=build.web_socket_url
                ),
                "REACT_APP_API_URL": codebuild.BuildEnvironmentVariable(
                    value=build.api_url
                ),
            }
        )

    def _create_site_bucket(self) -> s3.Bucket:
        """Create the private bucket holding the built site."""
        return s3.Bucket(
            self, "PlanningPokerAppBucket",
            removal_policy=RemovalPolicy.DESTROY,
            access_control=s3.BucketAccessControl.PRIVATE
        )

    def _create_origin_access_identity(self) -> cloudfront.OriginAccessIdentity:
        """Create the OAI and allow it to read objects from the site bucket."""
        oai = cloudfront.OriginAccessIdentity(self, "OriginAccessIdentity")

        self.site_bucket.add_to_resource_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["s3:GetObject"],
                principals=[
                    iam.CanonicalUserPrincipal(
                        oai.cloud_front_origin_access_identity_s3_canonical_user_id
                    )
                ],
                resources=[self.site_bucket.arn_for_objects("*")]
            )
        )

        return oai

    def _create_distribution(self) -> cloudfront.Distribution:
        """Create the CloudFront distribution in front of the site bucket.

        403 and 404 from the origin are both answered with the error page,
        keeping their status codes.
        """
        hosting = self.config.hosting
        error_responses = [
            cloudfront.ErrorResponse(
                ttl=Duration.seconds(hosting.error_ttl_seconds),
                http_status=status,
                response_http_status=status,
                response_page_path=hosting.error_page_path
            )
            for status in (403, 404)
        ]

        return cloudfront.Distribution(
            self, "PlanningPokerAppDistribution",
            default_behavior=cloudfront.BehaviorOptions(
                origin=origins.S3Origin(
                    self.site_bucket,
                    origin_access_identity=self.origin_access_identity
                ),
                allowed_methods=cloudfront.AllowedMethods.ALLOW_ALL,
                viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
                cached_methods=cloudfront.CachedMethods.CACHE_GET_HEAD,
                cache_policy=cloudfront.CachePolicy.CACHING_OPTIMIZED
            ),
            default_root_object=hosting.default_root_object,
            error_responses=error_responses,
            enable_ipv6=True,
            http_version=cloudfront.HttpVersion.HTTP2,
            price_class=cloudfront.PriceClass.PRICE_CLASS_ALL
        )

    def _create_invalidation_project(self) -> codebuild.PipelineProject:
        """Create a CodeBuild project that invalidates the whole distribution cache."""
        project = codebuild.PipelineProject(
            self, "PlanningPokerAppInvalidationProject",
            project_name=f"PlanningPokerAppInvalidation-{self.env_name}",
            build_spec=codebuild.BuildSpec.from_object({
                "version": "0.2",
                "phases": {
                    "build": {
                        "commands": [
                            'aws cloudfront create-invalidation --distribution-id ${CLOUDFRONT_ID} --paths "/*"'
                        ]
                    }
                }
            }),
            environment=codebuild.BuildEnvironment(
                build_image=getattr(codebuild.LinuxBuildImage, self.config.build.build_image)
            ),
            environment_variables={
                "CLOUDFRONT_ID": codebuild.BuildEnvironmentVariable(
                    value=self.distribution.distribution_id
                )
            }
        )

        self.distribution.grant_create_invalidation(project)

        return project

    def _create_pipeline(self) -> codepipeline.Pipeline:
        stages = [
            codepipeline.StageProps(stage_name="Source", actions=[self.source_action]),
            codepipeline.StageProps(stage_name="Build", actions=[self.build_action]),
            codepipeline.StageProps(stage_name="Deploy", actions=[self.deploy_action]),
        ]

        if self.invalidation_project is not None:
            stages.append(
                codepipeline.StageProps(
                    stage_name="Invalidate",
                    actions=[
                        cpactions.CodeBuildAction(
                            action_name="PlanningPokerAppInvalidateAction",
                            input=self.build_artifact,
                            project=self.invalidation_project,
                        )
                    ]
                )
            )

        return codepipeline.Pipeline(
            self, "PlanningPokerAppPipeline",
            pipeline_name=self.config.pipeline_name,
            stages=stages
        )

    def _create_outputs(self):
        """Create CloudFormation outputs."""
        CfnOutput(
            self, "BucketName",
            value=self.site_bucket.bucket_name,
            description="S3 bucket holding the built site"
        )

        CfnOutput(
            self, "DistributionId",
            value=self.distribution.distribution_id,
            description="CloudFront distribution ID"
        )

        CfnOutput(
            self, "DistributionDomainName",
            value=self.distribution.distribution_domain_name,
            description="CloudFront domain serving the app"
        )

        CfnOutput(
            self, "PipelineName",
            value=self.pipeline.pipeline_name,
            description="CodePipeline delivering the app"
        )
