"""Canonical field catalog for every TFKosmos screen.

One entry per logical control. Each pattern covers both UI locales
(Japanese and English) so that page objects never branch on language.
Strategies are tried in :class:`~tfkosmos_e2e.locators.FieldSpec` order:
role + accessible name, label, placeholder, text, structural CSS.
"""
from __future__ import annotations

from typing import Dict

from tfkosmos_e2e.locators import FieldSpec

# Feedback regions shared by every screen. Newer builds render them with
# role="alert"; older builds use bare styled <div>s, which is what the
# ``text_fallback`` entries below are for.
_ALERT_CSS = "[role='alert'], .alert, .notification, .success-message, .error-message"


def _fields(*specs: FieldSpec) -> Dict[str, FieldSpec]:
    return {spec.name: spec for spec in specs}


COMMON_FIELDS = _fields(
    FieldSpec("notification", role="alert", css=_ALERT_CSS, multiple=True),
    FieldSpec("loading_indicator", role="progressbar", css=".loading-spinner, [aria-busy='true']", multiple=True),
)

CONNECTION_FIELDS = _fields(
    FieldSpec("aws_tab", role="button", role_name=r"^AWS$", ignore_case=False),
    FieldSpec("azure_tab", role="button", role_name=r"^Azure$", ignore_case=False),
    # The AWS form renders the profile input twice (aws login section and the
    # access-key section); the first one is the one the test button reads.
    FieldSpec("aws_profile", label=r"^(プロファイル|Profile)(（オプション）|\s*\(optional\))?$", placeholder=r"^default$", index=0),
    FieldSpec("aws_region", label=r"AWSリージョン|AWS Region", placeholder=r"^[a-z]{2}-[a-z]+-\d$"),
    FieldSpec("aws_assume_role_arn", label=r"Assume Role ARN", placeholder=r"^arn:aws:iam::"),
    FieldSpec("aws_session_name", label=r"Session Name|セッション名"),
    FieldSpec("azure_auth_method", label=r"^(認証方式|Auth(entication)? Method)$", css="select[name='auth_method']"),
    FieldSpec("azure_tenant_id", label=r"^(テナントID|Tenant ID)$"),
    FieldSpec("azure_client_id", label=r"^Client ID$"),
    FieldSpec("azure_client_secret", label=r"^Client Secret$"),
    FieldSpec("test_button", role="button", role_name=r"^(接続テスト|テスト中\.*|Test Connection|Testing\.*)$"),
    FieldSpec(
        "connection_success",
        css=_ALERT_CSS,
        text=r"接続成功|Connection (successful|succeeded)",
        multiple=True,
        text_fallback=True,
    ),
    FieldSpec(
        "connection_error",
        css=_ALERT_CSS,
        text=r"接続に失敗|失敗|エラー|Connection failed|error|failed",
        multiple=True,
    ),
)

SCAN_FIELDS = _fields(
    FieldSpec("provider_select", label=r"^(プロバイダー?|Provider)$", css="select[name='provider']"),
    FieldSpec("aws_provider_button", role="button", role_name=r"^AWS$", ignore_case=False),
    FieldSpec("azure_provider_button", role="button", role_name=r"^Azure$", ignore_case=False),
    FieldSpec("aws_profile", label=r"^(プロファイル|Profile)$", placeholder=r"^default$", index=0),
    FieldSpec("aws_region", label=r"^(AWS\s*)?(リージョン|Region)"),
    FieldSpec("aws_assume_role_arn", label=r"Assume Role ARN"),
    FieldSpec("name_prefix", label=r"名前プレフィックス|Name Prefix", placeholder=r"^prod-$"),
    FieldSpec("azure_subscription", label=r"^(サブスクリプション|Subscription)"),
    FieldSpec("azure_resource_group", label=r"^(リソースグループ|Resource Group)"),
    FieldSpec("scan_button", role="button", role_name=r"^(スキャン実行|スキャン実行中\.*|Start Scan|Scanning\.*)$"),
    FieldSpec("progress_bar", role="progressbar", css=".progress-bar"),
    FieldSpec("progress_text", text=r"スキャン中|スキャンを開始しています|Scanning|Processing", index=0),
    FieldSpec(
        "scan_complete",
        css=_ALERT_CSS + ", .progress-message",
        text=r"スキャンが完了しました|Scan completed",
        multiple=True,
        text_fallback=True,
    ),
    FieldSpec(
        "scan_error",
        css=_ALERT_CSS,
        text=r"スキャンに失敗|Scan failed|エラー|error",
        multiple=True,
    ),
)

RESOURCES_FIELDS = _fields(
    FieldSpec("filter_toggle", role="button", role_name=r"^(フィルタ|Filter)"),
    FieldSpec("filter_input", placeholder=r"リソース名、ARN、IDなどで検索|Search by (resource )?name", css="input[type='search']"),
    FieldSpec("clear_filter", role="button", role_name=r"^(クリア|Clear)$"),
    FieldSpec("simple_search", label=r"シンプル検索|Simple search"),
    FieldSpec("advanced_query", label=r"高度なクエリ|Advanced query"),
    FieldSpec("select_all", label=r"^(すべて選択|全て選択|Select all)$", css="thead input[type='checkbox']", index=0),
    FieldSpec("resource_rows", css="tbody tr", multiple=True),
    FieldSpec("prev_page", role="button", role_name=r"^(前へ|Previous|Prev)$"),
    FieldSpec("next_page", role="button", role_name=r"^(次へ|Next)$"),
    FieldSpec("page_info", text=r"\d+\s*/\s*\d+\s*(ページ|pages?)", index=0),
    FieldSpec("selection_summary", text=r"個のリソースが選択されています|選択中|\d+\s+(resources?\s+)?selected", index=0),
    FieldSpec("go_to_generate", role="button", role_name=r"次へ[:：]\s*生成設定|生成設定へ進む|Next: Generat|Proceed to generat"),
    FieldSpec("dependency_graph", css="svg", index=0),
    FieldSpec("dependency_nodes", css=".react-flow__node, svg circle, svg rect", multiple=True),
)

GENERATE_FIELDS = _fields(
    FieldSpec("output_path", label=r"^(出力パス|Output Path)$"),
    FieldSpec("file_split_rule", label=r"^(ファイル分割ルール|File Split Rule)$"),
    FieldSpec("naming_convention", label=r"^(命名規則|Naming Convention)$"),
    FieldSpec("import_script_format", label=r"^(インポートスクリプト形式|Import Script Format)$"),
    FieldSpec("generate_readme", label=r"README(を)?生成|Generate README"),
    FieldSpec("generate_button", role="button", role_name=r"^(生成実行|生成中\.*|Generate|Generating\.*)$"),
    FieldSpec("download_button", role="button", role_name=r"ZIPダウンロード|Download ZIP"),
    FieldSpec(
        "generation_success",
        css=_ALERT_CSS,
        text=r"コードの生成が完了しました|Generation completed|generated successfully",
        multiple=True,
        text_fallback=True,
    ),
    FieldSpec(
        "generation_error",
        css=_ALERT_CSS,
        text=r"生成に失敗|失敗|エラー|接続できません|Generation failed|error",
        multiple=True,
    ),
    FieldSpec("preview_heading", role="heading", role_name=r"^(プレビュー|Preview)$"),
    FieldSpec("code_preview", css="pre code, .monaco-editor", index=0),
    FieldSpec("terraform_status", text=r"Terraform v?\d+\.\d+\.\d+", index=0),
    FieldSpec("terraform_missing", text=r"Terraform CLIが見つかりません|Terraform CLI not found", index=0),
    FieldSpec("validate_button", role="button", role_name=r"^(検証実行|検証中\.*|Validate|Validating\.*)$"),
    FieldSpec("format_check_button", role="button", role_name=r"^(フォーマットチェック|Format Check)$"),
    FieldSpec("format_apply_button", role="button", role_name=r"^(自動フォーマット|フォーマット中\.*|Apply Format|Formatting\.*)$"),
    # Validation and format results are plain status words, not alerts.
    FieldSpec("validation_passed", text=r"^\s*(検証成功|Validation passed)\s*$", multiple=True),
    FieldSpec("validation_failed", text=r"^\s*(検証エラー|Validation failed)\s*$", multiple=True),
    FieldSpec("validation_request_error", text=r"検証に失敗しました|Validation request failed", multiple=True),
    FieldSpec("format_clean", text=r"^\s*(フォーマット済み|Already formatted)\s*$", multiple=True),
    FieldSpec("format_dirty", text=r"^\s*(フォーマットが必要|Needs formatting)\s*$", multiple=True),
    FieldSpec("format_error", text=r"フォーマットに失敗しました|Format(ting)? failed", multiple=True),
)

TEMPLATES_FIELDS = _fields(
    FieldSpec("template_list", text=r"^\s*(テンプレート一覧|Templates)\s*$", index=0),
    FieldSpec("editor", css=".monaco-editor", index=0),
    FieldSpec("preview_button", role="button", role_name=r"^(プレビュー|プレビュー中\.*|Preview|Previewing\.*)$"),
    FieldSpec("save_button", role="button", role_name=r"^(保存|保存中\.*|Save|Saving\.*)$"),
    FieldSpec("restore_button", role="button", role_name=r"^(デフォルトに復元|Restore Default|Restore to default)$"),
    FieldSpec(
        "save_success",
        css=_ALERT_CSS,
        text=r"保存しました|復元しました|saved|restored",
        multiple=True,
        text_fallback=True,
    ),
    FieldSpec("template_error", css=_ALERT_CSS, text=r"失敗|エラー|failed|error", multiple=True),
    FieldSpec("validation_errors_section", text=r"バリデーションエラー\s*\(\d+\)|Validation errors\s*\(\d+\)", index=0),
    FieldSpec("preview_heading", role="heading", role_name=r"^(プレビュー|Preview)$"),
)
