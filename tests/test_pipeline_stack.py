import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Match

from infra.pipeline_stack import PlanningPokerAppStack
from planning_poker_infra.config import PipelineConfig
from planning_poker_infra.exceptions import ConfigurationError


def _pipeline_stages(template):
    pipelines = template.find_resources("AWS::CodePipeline::Pipeline")
    assert len(pipelines) == 1
    return list(pipelines.values())[0]["Properties"]["Stages"]


def test_pipeline_has_source_build_deploy_stages(template):
    template.has_resource_properties(
        "AWS::CodePipeline::Pipeline",
        {
            "Name": "PlanningPokerAppPipeline",
            "Stages": [
                Match.object_like({"Name": "Source"}),
                Match.object_like({"Name": "Build"}),
                Match.object_like({"Name": "Deploy"}),
            ],
        },
    )


def test_github_source_action_polls_main_with_secret_token(template):
    source = _pipeline_stages(template)[0]["Actions"][0]

    assert source["Name"] == "PlanningPokerAppGitHubAction"
    assert source["ActionTypeId"] == {
        "Category": "Source",
        "Owner": "ThirdParty",
        "Provider": "GitHub",
        "Version": "1",
    }

    configuration = source["Configuration"]
    assert configuration["Owner"] == "poker-team"
    assert configuration["Repo"] == "planning-poker-app"
    assert configuration["Branch"] == "main"
    assert configuration["PollForSourceChanges"] is True
    # Token resolved by CloudFormation from the "token" key of the secret
    assert configuration["OAuthToken"] == "{{resolve:secretsmanager:github/planning-poker:SecretString:token::}}"

    template.resource_count_is("AWS::CodePipeline::Webhook", 0)


def test_webhook_trigger_creates_webhook(sample_config, make_template):
    config = sample_config.model_copy(
        update={"source": sample_config.source.model_copy(update={"trigger": "webhook"})}
    )
    template = make_template(config)

    source = _pipeline_stages(template)[0]["Actions"][0]
    assert source["Configuration"]["PollForSourceChanges"] is False
    template.resource_count_is("AWS::CodePipeline::Webhook", 1)


def test_build_project_reads_buildspec_from_source(template):
    template.has_resource_properties(
        "AWS::CodeBuild::Project",
        {
            "Name": "PlanningPokerAppBuildProject",
            "Environment": Match.object_like({"Image": "aws/codebuild/standard:5.0"}),
            "Source": {"Type": "CODEPIPELINE", "BuildSpec": "buildspec.yml"},
        },
    )


def test_build_action_passes_app_urls(template):
    build = _pipeline_stages(template)[1]["Actions"][0]

    assert build["Name"] == "PlanningPokerAppBuildAction"
    assert build["ActionTypeId"]["Provider"] == "CodeBuild"
    assert len(build["InputArtifacts"]) == 1
    assert len(build["OutputArtifacts"]) == 1

    env_vars = Match.serialized_json(
        Match.array_with([
            Match.object_like({"name": "REACT_APP_WEB_SOCKET_URL", "value": "wss://ws.poker.example.com"}),
        ])
    )
    api_vars = Match.serialized_json(
        Match.array_with([
            Match.object_like({"name": "REACT_APP_API_URL", "value": "https://api.poker.example.com"}),
        ])
    )
    for matcher in (env_vars, api_vars):
        template.has_resource_properties(
            "AWS::CodePipeline::Pipeline",
            {
                "Stages": Match.array_with([
                    Match.object_like({
                        "Name": "Build",
                        "Actions": [
                            Match.object_like({"Configuration": Match.object_like({"EnvironmentVariables": matcher})})
                        ],
                    })
                ])
            },
        )


def test_deploy_action_targets_site_bucket(template):
    deploy = _pipeline_stages(template)[2]["Actions"][0]

    assert deploy["Name"] == "PlanningPokerAppDeployAction"
    assert deploy["ActionTypeId"] == {
        "Category": "Deploy",
        "Owner": "AWS",
        "Provider": "S3",
        "Version": "1",
    }
    bucket_ref = deploy["Configuration"]["BucketName"]["Ref"]
    assert bucket_ref.startswith("PlanningPokerAppBucket")

    # Deploy consumes what the build produced
    build = _pipeline_stages(template)[1]["Actions"][0]
    assert deploy["InputArtifacts"] == build["OutputArtifacts"]


def test_build_image_is_configurable(sample_config, make_template):
    config = sample_config.model_copy(
        update={"build": sample_config.build.model_copy(update={"build_image": "STANDARD_7_0"})}
    )
    template = make_template(config)

    template.has_resource_properties(
        "AWS::CodeBuild::Project",
        {"Environment": Match.object_like({"Image": "aws/codebuild/standard:7.0"})},
    )


def test_stack_refuses_incomplete_config():
    app = cdk.App()
    config = PipelineConfig(source={"owner": "poker-team"})

    with pytest.raises(ConfigurationError) as exc_info:
        PlanningPokerAppStack(app, "TestPlanningPokerStack", config=config)

    assert "SOURCE_ACTION_REPO" in exc_info.value.missing
