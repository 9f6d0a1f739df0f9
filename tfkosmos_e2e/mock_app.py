"""Mock TFKosmos application for harness self-tests.

This mock serves the TFKosmos screens as a small single-page app plus the
JSON endpoints it calls:
- /connection: AWS/Azure credential test
- /scan: scan configuration, progress and redirect to /resources/{scanId}
- /resources/{scanId}: tabs, filter, paginated table, selection, dependency graph
- /generate/{scanId}: generation settings, job, ZIP download, Terraform checks
- /templates: template editor with debounced validation, save, restore, preview

Labels are English by default and Japanese for ``?lang=ja`` or a Japanese
Accept-Language header, so the same tests cover both locales. Valid inputs
match :mod:`tfkosmos_e2e.testdata`.
"""
from __future__ import annotations

import fnmatch
import io
import re
import secrets
import threading
import time
from typing import Any, Dict, List, Optional
import zipfile

from flask import Flask, jsonify, redirect, render_template_string, request, send_file
from jinja2 import ChainableUndefined, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment

# Accepted credentials
MOCK_AWS_PROFILE = "default"
MOCK_AWS_ACCOUNT = "123456789012"
MOCK_AZURE_TENANT_ID = "test-tenant-id"
MOCK_AZURE_CLIENT_ID = "test-client-id"
MOCK_AZURE_CLIENT_SECRET = "test-client-secret"

ARTIFACT_NAME = "terraform-output.zip"
PAGE_SIZE = 10

AWS_TABS = ("users", "groups", "roles", "policies", "attachments", "cleanup", "dependencies")
AZURE_TABS = ("role_assignments", "role_definitions", "dependencies")

TERRAFORM_TYPES = {
    "users": "aws_iam_user",
    "groups": "aws_iam_group",
    "roles": "aws_iam_role",
    "policies": "aws_iam_policy",
    "attachments": "aws_iam_user_policy_attachment",
    "cleanup": "aws_iam_access_key",
    "role_assignments": "azurerm_role_assignment",
    "role_definitions": "azurerm_role_definition",
}

DEFAULT_TEMPLATES = {
    "iam_user": (
        'resource "aws_iam_user" "{{ resource_name }}" {\n'
        '  name = "{{ user.user_name }}"\n'
        '  path = "{{ user.path }}"\n'
        "}\n"
    ),
    "iam_group": (
        'resource "aws_iam_group" "{{ resource_name }}" {\n'
        '  name = "{{ group.group_name }}"\n'
        "}\n"
    ),
    "iam_role": (
        'resource "aws_iam_role" "{{ resource_name }}" {\n'
        '  name               = "{{ role.role_name }}"\n'
        "  assume_role_policy = {{ role.assume_role_policy_document | tojson }}\n"
        "}\n"
    ),
    "iam_policy": (
        'resource "aws_iam_policy" "{{ resource_name }}" {\n'
        '  name   = "{{ policy.policy_name }}"\n'
        "  policy = {{ policy.document | tojson }}\n"
        "}\n"
    ),
    "role_assignment": (
        'resource "azurerm_role_assignment" "{{ resource_name }}" {\n'
        '  scope              = "{{ assignment.scope }}"\n'
        '  role_definition_id = "{{ assignment.role_definition_id }}"\n'
        '  principal_id       = "{{ assignment.principal_id }}"\n'
        "}\n"
    ),
    "role_definition": (
        'resource "azurerm_role_definition" "{{ resource_name }}" {\n'
        '  name  = "{{ definition.role_name }}"\n'
        '  scope = "{{ definition.scope }}"\n'
        "}\n"
    ),
}

_PREVIEW_CONTEXT = {
    "resource_name": "example",
    "user": {"user_name": "example-user", "path": "/"},
    "group": {"group_name": "example-group"},
    "role": {"role_name": "example-role", "assume_role_policy_document": {"Version": "2012-10-17"}},
    "policy": {"policy_name": "example-policy", "document": {"Version": "2012-10-17"}},
    "assignment": {
        "scope": "/subscriptions/test-subscription",
        "role_definition_id": "acdd72a7-3385-48ef-bd42-f606fba81ae7",
        "principal_id": "00000000-0000-0000-0000-000000000001",
    },
    "definition": {"role_name": "example-role", "scope": "/subscriptions/test-subscription"},
}

_TEMPLATE_ENV = SandboxedEnvironment(undefined=ChainableUndefined, keep_trailing_newline=True)

_ARN_PATTERN = re.compile(r"^arn:aws:iam::\d{12}:role/[\w+=,.@/-]+$")
_QUERY_PATTERN = re.compile(r'^\s*(name|identifier)\s*(==|!=|LIKE)\s*"([^"]*)"\s*$', re.IGNORECASE)

TEXTS: Dict[str, Dict[str, Any]] = {
    "en": {
        "connection_title": "Connection settings",
        "profile_optional": "Profile (optional)",
        "aws_region": "AWS Region",
        "assume_role": "Assume Role ARN (optional)",
        "session_name": "Session Name (optional)",
        "auth_method": "Authentication Method",
        "tenant_id": "Tenant ID",
        "test": "Test Connection",
        "testing": "Testing...",
        "connection_ok": "Connection successful",
        "connection_failed": "Connection failed",
        "scan_title": "Scan configuration",
        "provider": "Provider",
        "profile": "Profile",
        "region": "Region",
        "name_prefix": "Name Prefix (optional)",
        "subscription": "Subscription",
        "resource_group": "Resource Group (optional)",
        "scan": "Start Scan",
        "scanning": "Scanning...",
        "scan_progress": "Scanning... {progress}%",
        "scan_done": "Scan completed",
        "scan_failed": "Scan failed",
        "resources_title": "Scan results",
        "loading": "Loading...",
        "filter": "Filter",
        "filter_close": "Filter (hide)",
        "simple_search": "Simple search",
        "advanced_query": "Advanced query",
        "search_placeholder": "Search by resource name, ARN, ID",
        "query_placeholder": 'e.g. name LIKE "test-*"',
        "clear": "Clear",
        "select_all": "Select all",
        "select_row": "Select {name}",
        "name": "Name",
        "identifier": "ARN / ID",
        "empty": "No resources",
        "prev": "Previous",
        "next": "Next",
        "page_info": "{page} / {pages} pages (total {total})",
        "selected": "{count} resources selected",
        "go_generate": "Proceed to generation",
        "dependency_graph": "Dependency graph",
        "generate_title": "Generation settings",
        "output_path": "Output Path",
        "split_rule": "File Split Rule",
        "split_rule_options": ["Single file", "By resource type", "By resource name", "By resource group", "By subscription"],
        "naming": "Naming Convention",
        "naming_options": ["snake_case", "kebab-case", "Keep original names"],
        "import_format": "Import Script Format",
        "readme": "Generate README",
        "generate": "Generate",
        "generating": "Generating...",
        "generation_done": "Terraform code generation completed",
        "generation_failed": "Generation failed",
        "download": "Download ZIP",
        "download_done": "ZIP file download completed",
        "preview": "Preview",
        "terraform_missing": "Terraform CLI not found",
        "validate": "Validate",
        "validating": "Validating...",
        "validation_passed": "Validation passed",
        "validation_failed": "Validation failed",
        "validation_error": "Validation request failed",
        "format_clean": "Already formatted",
        "format_dirty": "Needs formatting",
        "format_apply": "Apply Format",
        "formatting": "Formatting...",
        "format_error": "Formatting failed",
        "template_list": "Templates",
        "editor": "Template editor",
        "save": "Save",
        "saving": "Saving...",
        "saved": "Template saved",
        "save_failed": "Save failed",
        "restore": "Restore Default",
        "confirm_restore": "Restore the default template?",
        "restored": "Default template restored",
        "restore_failed": "Restore failed",
        "preview_failed": "Preview failed",
        "validation_errors": "Validation errors",
    },
    "ja": {
        "connection_title": "接続設定",
        "profile_optional": "プロファイル（オプション）",
        "aws_region": "AWSリージョン",
        "assume_role": "Assume Role ARN（オプション）",
        "session_name": "セッション名（オプション）",
        "auth_method": "認証方式",
        "tenant_id": "テナントID",
        "test": "接続テスト",
        "testing": "テスト中...",
        "connection_ok": "接続成功",
        "connection_failed": "接続に失敗しました",
        "scan_title": "スキャン設定",
        "provider": "プロバイダー",
        "profile": "プロファイル",
        "region": "リージョン",
        "name_prefix": "名前プレフィックス（オプション）",
        "subscription": "サブスクリプション",
        "resource_group": "リソースグループ（オプション）",
        "scan": "スキャン実行",
        "scanning": "スキャン実行中...",
        "scan_progress": "スキャン中... {progress}%",
        "scan_done": "スキャンが完了しました",
        "scan_failed": "スキャンに失敗しました",
        "resources_title": "スキャン結果",
        "loading": "読み込み中...",
        "filter": "フィルタ",
        "filter_close": "フィルタを閉じる",
        "simple_search": "シンプル検索",
        "advanced_query": "高度なクエリ",
        "search_placeholder": "リソース名、ARN、IDなどで検索",
        "query_placeholder": '例: name LIKE "test-*"',
        "clear": "クリア",
        "select_all": "すべて選択",
        "select_row": "{name} を選択",
        "name": "名前",
        "identifier": "ARN / ID",
        "empty": "リソースがありません",
        "prev": "前へ",
        "next": "次へ",
        "page_info": "{page} / {pages} ページ (全 {total} 件)",
        "selected": "{count} 個のリソースが選択されています",
        "go_generate": "生成設定へ進む",
        "dependency_graph": "依存関係グラフ",
        "generate_title": "生成設定",
        "output_path": "出力パス",
        "split_rule": "ファイル分割ルール",
        "split_rule_options": ["単一ファイル", "リソースタイプ別", "リソース名別", "リソースグループ別", "サブスクリプション別"],
        "naming": "命名規則",
        "naming_options": ["snake_case", "kebab-case", "元の名前を維持"],
        "import_format": "インポートスクリプト形式",
        "readme": "READMEを生成",
        "generate": "生成実行",
        "generating": "生成中...",
        "generation_done": "Terraformコードの生成が完了しました",
        "generation_failed": "生成に失敗しました",
        "download": "ZIPダウンロード",
        "download_done": "ZIPファイルのダウンロードが完了しました",
        "preview": "プレビュー",
        "terraform_missing": "Terraform CLIが見つかりません",
        "validate": "検証実行",
        "validating": "検証中...",
        "validation_passed": "検証成功",
        "validation_failed": "検証エラー",
        "validation_error": "検証に失敗しました",
        "format_clean": "フォーマット済み",
        "format_dirty": "フォーマットが必要",
        "format_apply": "自動フォーマット",
        "formatting": "フォーマット中...",
        "format_error": "フォーマットに失敗しました",
        "template_list": "テンプレート一覧",
        "editor": "テンプレートエディタ",
        "save": "保存",
        "saving": "保存中...",
        "saved": "テンプレートを保存しました",
        "save_failed": "保存に失敗しました",
        "restore": "デフォルトに復元",
        "confirm_restore": "デフォルトに復元しますか？",
        "restored": "デフォルトに復元しました",
        "restore_failed": "復元に失敗しました",
        "preview_failed": "プレビューに失敗しました",
        "validation_errors": "バリデーションエラー",
    },
}

_SHELL = """<!doctype html>
<html lang="{{ lang }}">
<head>
<meta charset="utf-8">
<title>TFKosmos</title>
<style>{{ css|safe }}</style>
</head>
<body>
<main id="app"></main>
<div id="notifications" aria-live="polite"></div>
<script>window.TEXTS = {{ texts|tojson }};</script>
<script>{{ script|safe }}</script>
</body>
</html>
"""

_CSS = """
body { font-family: sans-serif; margin: 2rem; }
.tabs button.active { font-weight: bold; }
.field { margin: 0.5rem 0; }
.field label { display: inline-block; min-width: 14rem; }
.alert { padding: 0.5rem 1rem; margin: 0.5rem 0; border-radius: 4px; }
.alert-success { background: #e6f4ea; color: #1e4620; }
.alert-error { background: #fdecea; color: #611a15; }
.progress-bar { width: 320px; height: 12px; background: #eee; }
.progress-fill { height: 100%; background: #4a90d9; }
.loading-spinner { padding: 0.5rem; }
.pagination { margin: 0.5rem 0; }
.monaco-editor textarea { font-family: monospace; width: 100%; }
[hidden] { display: none !important; }
"""

_SCRIPT = r"""
(function () {
  "use strict";
  const T = window.TEXTS;
  const app = document.getElementById("app");
  const notes = document.getElementById("notifications");
  const $ = (selector, root) => (root || document).querySelector(selector);
  const sleep = (ms) => new Promise((resolve) => setTimeout(resolve, ms));
  const REGIONS = ["us-east-1", "us-west-2", "eu-west-1", "ap-northeast-1"];
  const TAB_SETS = {
    aws: ["users", "groups", "roles", "policies", "attachments", "cleanup", "dependencies"],
    azure: ["role_assignments", "role_definitions", "dependencies"],
  };
  const SPLIT_RULES = ["single", "by_resource_type", "by_resource_name", "by_resource_group", "by_subscription"];
  const NAMING = ["snake_case", "kebab-case", "original"];
  const IMPORT_FORMATS = ["sh", "ps1"];

  let connectionProvider = null;
  let view = null;
  let generation = null;
  let editor = null;

  // ---- helpers ---------------------------------------------------------------
  function esc(value) {
    const map = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"};
    return String(value).replace(/[&<>"']/g, (c) => map[c]);
  }
  function fmt(template, values) {
    return template.replace(/\{(\w+)\}/g, (_, key) => String(values[key]));
  }
  function val(selector) {
    const element = $(selector);
    return element ? element.value.trim() : "";
  }
  function field(id, label, control) {
    return `<div class="field"><label for="${id}">${esc(label)}</label>${control}</div>`;
  }
  function options(values, labels) {
    return values.map((v, i) => `<option value="${esc(v)}">${esc(labels ? labels[i] : v)}</option>`).join("");
  }
  function tabLabel(tab) {
    return tab.split("_").map((w) => w.charAt(0).toUpperCase() + w.slice(1)).join(" ");
  }
  function busy(button, label) { button.disabled = true; button.textContent = label; }
  function idle(button, label) {
    if (document.body.contains(button)) { button.disabled = false; button.textContent = label; }
  }
  function clearNotes() { notes.innerHTML = ""; }
  function notify(kind, text) {
    const div = document.createElement("div");
    div.setAttribute("role", "alert");
    div.className = "alert alert-" + kind;
    div.textContent = text;
    notes.appendChild(div);
  }
  async function api(method, url, body) {
    const init = {method: method, headers: {"Content-Type": "application/json"}};
    if (body !== undefined) { init.body = JSON.stringify(body); }
    const response = await fetch(url, init);
    const data = await response.json();
    if (!response.ok || data.success === false) { throw new Error(data.message || response.statusText); }
    return data;
  }
  function go(path) {
    history.pushState({}, "", path + location.search);
    route();
  }

  // ---- connection ------------------------------------------------------------
  function renderConnection() {
    connectionProvider = null;
    app.innerHTML = `
      <h1>${esc(T.connection_title)}</h1>
      <div class="tabs">
        <button type="button" id="tab-aws">AWS</button>
        <button type="button" id="tab-azure">Azure</button>
      </div>
      <form id="connection-form" onsubmit="return false"></form>
      <button type="button" id="test-btn">${esc(T.test)}</button>`;
    $("#tab-aws").addEventListener("click", () => showConnectionForm("aws"));
    $("#tab-azure").addEventListener("click", () => showConnectionForm("azure"));
    $("#test-btn").addEventListener("click", testConnection);
    showConnectionForm("aws");
  }

  function showConnectionForm(provider) {
    if (provider === connectionProvider) { return; }
    connectionProvider = provider;
    $("#tab-aws").classList.toggle("active", provider === "aws");
    $("#tab-azure").classList.toggle("active", provider === "azure");
    const form = $("#connection-form");
    if (provider === "aws") {
      form.innerHTML =
        field("aws-profile", T.profile_optional, '<input id="aws-profile" placeholder="default">') +
        field("aws-region", T.aws_region, `<select id="aws-region">${options(REGIONS)}</select>`) +
        field("aws-role-arn", T.assume_role,
              '<input id="aws-role-arn" placeholder="arn:aws:iam::123456789012:role/RoleName">') +
        field("aws-session", T.session_name, '<input id="aws-session">');
      return;
    }
    form.innerHTML =
      field("auth-method", T.auth_method,
            `<select id="auth-method" name="auth_method">${options(
              ["az_login", "service_principal"], ["Azure CLI (az login)", "Service Principal"])}</select>`) +
      '<div id="sp-fields"></div>';
    $("#auth-method").addEventListener("change", renderServicePrincipal);
  }

  function renderServicePrincipal() {
    const box = $("#sp-fields");
    if (val("#auth-method") !== "service_principal") { box.innerHTML = ""; return; }
    box.innerHTML =
      field("tenant-id", T.tenant_id, '<input id="tenant-id">') +
      field("client-id", "Client ID", '<input id="client-id">') +
      field("client-secret", "Client Secret", '<input id="client-secret" type="password">');
  }

  async function testConnection() {
    const button = $("#test-btn");
    if (button.disabled) { return; }
    clearNotes();
    busy(button, T.testing);
    const provider = connectionProvider;
    const body = provider === "aws"
      ? {profile: val("#aws-profile"), region: val("#aws-region"),
         assume_role_arn: val("#aws-role-arn"), session_name: val("#aws-session")}
      : {auth_method: val("#auth-method"), tenant_id: val("#tenant-id"),
         client_id: val("#client-id"), client_secret: val("#client-secret")};
    try {
      const data = await api("POST", "/api/connection/" + provider, body);
      notify("success", `${T.connection_ok}: ${data.identity}`);
    } catch (error) {
      notify("error", `${T.connection_failed}: ${error.message}`);
    } finally {
      idle(button, T.test);
    }
  }

  // ---- scan ------------------------------------------------------------------
  function renderScan() {
    app.innerHTML = `
      <h1>${esc(T.scan_title)}</h1>
      ${field("provider", T.provider,
              `<select id="provider" name="provider">${options(["aws", "azure"], ["AWS", "Azure"])}</select>`)}
      <form id="scan-fields" onsubmit="return false"></form>
      <button type="button" id="scan-btn">${esc(T.scan)}</button>
      <div id="scan-progress"></div>`;
    $("#provider").addEventListener("change", renderScanFields);
    $("#scan-btn").addEventListener("click", startScan);
    renderScanFields();
  }

  function renderScanFields() {
    const box = $("#scan-fields");
    if (val("#provider") === "aws") {
      box.innerHTML =
        field("scan-profile", T.profile, '<input id="scan-profile" placeholder="default">') +
        field("scan-region", T.region, `<select id="scan-region">${options(REGIONS)}</select>`) +
        field("scan-role-arn", T.assume_role, '<input id="scan-role-arn">') +
        field("name-prefix", T.name_prefix, '<input id="name-prefix" placeholder="prod-">');
      return;
    }
    box.innerHTML =
      field("subscription", T.subscription,
            '<input id="subscription" placeholder="00000000-0000-0000-0000-000000000000">') +
      field("resource-group", T.resource_group, '<input id="resource-group">');
  }

  async function startScan() {
    const button = $("#scan-btn");
    if (button.disabled) { return; }
    clearNotes();
    $("#scan-progress").innerHTML = "";
    busy(button, T.scanning);
    const provider = val("#provider");
    const body = provider === "aws"
      ? {profile: val("#scan-profile"), region: val("#scan-region"),
         assume_role_arn: val("#scan-role-arn"), name_prefix: val("#name-prefix")}
      : {subscription: val("#subscription"), resource_group: val("#resource-group")};
    try {
      const started = await api("POST", "/api/scan/" + provider, body);
      await followScan(started.scan_id);
    } catch (error) {
      notify("error", `${T.scan_failed}: ${error.message}`);
      idle(button, T.scan);
    }
  }

  async function followScan(scanId) {
    for (;;) {
      const status = await api("GET", "/api/scan/" + scanId);
      const box = $("#scan-progress");
      if (!box) { return; }
      if (status.status === "failed") { throw new Error(status.message); }
      box.innerHTML = `
        <div class="progress-bar" role="progressbar" aria-valuemin="0" aria-valuemax="100"
             aria-valuenow="${status.progress}"><div class="progress-fill" style="width: ${status.progress}%"></div></div>
        <p class="progress-message">${esc(fmt(T.scan_progress, {progress: status.progress}))}</p>`;
      if (status.status === "completed") {
        notify("success", T.scan_done);
        await sleep(300);
        go("/resources/" + encodeURIComponent(scanId));
        return;
      }
      await sleep(200);
    }
  }

  // ---- resources -------------------------------------------------------------
  async function renderResources(scanId) {
    app.innerHTML = `<div class="loading-spinner">${esc(T.loading)}</div>`;
    let scan;
    try {
      scan = await api("GET", "/api/scan/" + encodeURIComponent(scanId));
    } catch (error) {
      app.innerHTML = "";
      notify("error", error.message);
      return;
    }
    const tabs = TAB_SETS[scan.provider];
    view = {scanId: scanId, tab: tabs[0], page: 1, query: "", mode: "simple", filterOpen: false,
            selected: new Set(), ids: [], timer: null, seq: 0};
    app.innerHTML = `
      <h1>${esc(T.resources_title)}</h1>
      <div class="tabs">${tabs.map((t) => `<button type="button" data-tab="${t}">${esc(tabLabel(t))}</button>`).join("")}</div>
      <button type="button" id="filter-toggle">${esc(T.filter)}</button>
      <div id="filter-panel"></div>
      <div class="loading-spinner" id="spinner" hidden>${esc(T.loading)}</div>
      <div id="resource-body"></div>
      <div id="selection-bar"></div>`;
    app.querySelectorAll("[data-tab]").forEach((b) => b.addEventListener("click", () => switchTab(b.dataset.tab)));
    $("#filter-toggle").addEventListener("click", toggleFilter);
    switchTab(view.tab);
  }

  function switchTab(tab) {
    view.tab = tab;
    view.page = 1;
    view.ids = [];
    app.querySelectorAll("[data-tab]").forEach((b) => b.classList.toggle("active", b.dataset.tab === tab));
    if (tab === "dependencies") { loadGraph(); return; }
    $("#resource-body").innerHTML = `
      <table>
        <thead><tr>
          <th><input type="checkbox" id="select-all" aria-label="${esc(T.select_all)}"></th>
          <th>${esc(T.name)}</th><th>${esc(T.identifier)}</th>
        </tr></thead>
        <tbody id="rows"></tbody>
      </table>
      <p id="empty" hidden>${esc(T.empty)}</p>
      <div class="pagination">
        <button type="button" id="prev-page" disabled>${esc(T.prev)}</button>
        <span id="page-info"></span>
        <button type="button" id="next-page" disabled>${esc(T.next)}</button>
      </div>`;
    $("#select-all").addEventListener("change", (event) => {
      if (event.target.checked) {
        view.ids.forEach((id) => view.selected.add(id));
      } else {
        view.selected.clear();
      }
      syncSelection();
    });
    $("#prev-page").addEventListener("click", () => { view.page -= 1; loadTable(); });
    $("#next-page").addEventListener("click", () => { view.page += 1; loadTable(); });
    loadTable();
  }

  async function loadTable() {
    const seq = ++view.seq;
    const current = view;
    $("#spinner").hidden = false;
    $("#rows").innerHTML = "";
    const params = new URLSearchParams({type: current.tab, page: current.page, page_size: 10,
                                        query: current.query, mode: current.mode});
    try {
      const data = await api("GET", `/api/resources/${encodeURIComponent(current.scanId)}?${params}`);
      if (view !== current || seq !== current.seq || !$("#rows")) { return; }
      current.ids = data.ids;
      current.page = data.page;
      $("#rows").innerHTML = data.items.map((item) => `
        <tr data-id="${esc(item.id)}">
          <td><input type="checkbox" aria-label="${esc(fmt(T.select_row, {name: item.name}))}"></td>
          <td>${esc(item.name)}</td>
          <td>${esc(item.identifier)}</td>
        </tr>`).join("");
      $("#rows").querySelectorAll("tr").forEach((row) => {
        row.querySelector("input").addEventListener("change", (event) => {
          if (event.target.checked) {
            current.selected.add(row.dataset.id);
          } else {
            current.selected.delete(row.dataset.id);
          }
          syncSelection();
        });
      });
      $("#empty").hidden = data.total > 0;
      $("#page-info").textContent = fmt(T.page_info, {page: data.page, pages: data.total_pages, total: data.total});
      $("#prev-page").disabled = data.page <= 1;
      $("#next-page").disabled = data.page >= data.total_pages;
      syncSelection();
    } catch (error) {
      notify("error", error.message);
    } finally {
      if (view === current && seq === current.seq && $("#spinner")) { $("#spinner").hidden = true; }
    }
  }

  function syncSelection() {
    const rows = $("#rows");
    if (rows) {
      rows.querySelectorAll("tr").forEach((row) => {
        row.querySelector("input").checked = view.selected.has(row.dataset.id);
      });
    }
    const all = $("#select-all");
    if (all) { all.checked = view.ids.length > 0 && view.ids.every((id) => view.selected.has(id)); }
    const count = view.selected.size;
    const bar = $("#selection-bar");
    bar.innerHTML = count
      ? `<span class="selection-summary">${esc(fmt(T.selected, {count: count}))}</span>
         <button type="button" id="go-generate">${esc(T.go_generate)}</button>`
      : "";
    if (count) { $("#go-generate").addEventListener("click", goToGenerate); }
  }

  function toggleFilter() {
    view.filterOpen = !view.filterOpen;
    $("#filter-toggle").textContent = view.filterOpen ? T.filter_close : T.filter;
    const panel = $("#filter-panel");
    if (!view.filterOpen) { panel.innerHTML = ""; return; }
    panel.innerHTML = `
      <label><input type="radio" name="filter-mode" value="simple"> ${esc(T.simple_search)}</label>
      <label><input type="radio" name="filter-mode" value="advanced"> ${esc(T.advanced_query)}</label>
      <input type="search" id="filter-input">
      <button type="button" id="clear-filter">${esc(T.clear)}</button>`;
    panel.querySelector(`input[value="${view.mode}"]`).checked = true;
    const input = $("#filter-input");
    input.value = view.query;
    input.placeholder = view.mode === "simple" ? T.search_placeholder : T.query_placeholder;
    panel.querySelectorAll("input[name='filter-mode']").forEach((radio) => {
      radio.addEventListener("change", () => {
        view.mode = radio.value;
        input.placeholder = view.mode === "simple" ? T.search_placeholder : T.query_placeholder;
        if (view.query) { reload(); }
      });
    });
    input.addEventListener("input", () => {
      clearTimeout(view.timer);
      view.timer = setTimeout(() => { view.query = input.value.trim(); view.page = 1; reload(); }, 300);
    });
    $("#clear-filter").addEventListener("click", () => {
      clearTimeout(view.timer);
      input.value = "";
      view.query = "";
      view.page = 1;
      reload();
    });
  }

  function reload() {
    if (view.tab === "dependencies") { loadGraph(); } else { loadTable(); }
  }

  async function loadGraph() {
    const current = view;
    const spinner = $("#spinner");
    spinner.hidden = false;
    $("#resource-body").innerHTML = "";
    try {
      const data = await api("GET", `/api/resources/${encodeURIComponent(current.scanId)}/dependencies`);
      if (view !== current || current.tab !== "dependencies") { return; }
      const width = 640;
      const height = 360;
      const positions = {};
      data.nodes.forEach((node, i) => {
        const angle = (2 * Math.PI * i) / data.nodes.length;
        positions[node.id] = [Math.round(width / 2 + 140 * Math.cos(angle)), Math.round(height / 2 + 140 * Math.sin(angle))];
      });
      const edges = data.edges.map((edge) => {
        const [x1, y1] = positions[edge.source];
        const [x2, y2] = positions[edge.target];
        return `<line x1="${x1}" y1="${y1}" x2="${x2}" y2="${y2}" stroke="#999"></line>`;
      }).join("");
      const nodes = data.nodes.map((node) => {
        const [x, y] = positions[node.id];
        return `<g class="graph-node"><circle cx="${x}" cy="${y}" r="14" fill="#4a90d9"></circle>` +
               `<text x="${x}" y="${y - 18}" text-anchor="middle">${esc(node.label)}</text></g>`;
      }).join("");
      $("#resource-body").innerHTML =
        `<svg width="${width}" height="${height}" aria-label="${esc(T.dependency_graph)}">${edges}${nodes}</svg>`;
    } catch (error) {
      notify("error", error.message);
    } finally {
      if (view === current) { spinner.hidden = true; }
    }
  }

  function goToGenerate() {
    sessionStorage.setItem("selection:" + view.scanId, JSON.stringify(Array.from(view.selected)));
    go("/generate/" + encodeURIComponent(view.scanId));
  }

  // ---- generate --------------------------------------------------------------
  function renderGenerate(scanId) {
    generation = {scanId: scanId, id: null};
    app.innerHTML = `
      <h1>${esc(T.generate_title)}</h1>
      <form id="generate-form" onsubmit="return false">
        ${field("output-path", T.output_path, '<input id="output-path" value="./terraform-output">')}
        ${field("split-rule", T.split_rule, `<select id="split-rule">${options(SPLIT_RULES, T.split_rule_options)}</select>`)}
        ${field("naming", T.naming, `<select id="naming">${options(NAMING, T.naming_options)}</select>`)}
        ${field("import-format", T.import_format,
                `<select id="import-format">${options(IMPORT_FORMATS, ["Shell (.sh)", "PowerShell (.ps1)"])}</select>`)}
        <div class="field"><label><input type="checkbox" id="readme" checked> ${esc(T.readme)}</label></div>
      </form>
      <button type="button" id="generate-btn">${esc(T.generate)}</button>
      <div id="generation-result"></div>
      <section id="terraform-panel" hidden>
        <h3>Terraform CLI</h3>
        <div id="tf-status"></div>
        <button type="button" id="validate-btn" hidden>${esc(T.validate)}</button>
        <div id="tf-results"></div>
      </section>`;
    $("#split-rule").value = "by_resource_type";
    $("#generate-btn").addEventListener("click", runGeneration);
    $("#validate-btn").addEventListener("click", runValidation);
  }

  async function runGeneration() {
    const button = $("#generate-btn");
    if (button.disabled) { return; }
    const current = generation;
    clearNotes();
    $("#generation-result").innerHTML = "";
    $("#terraform-panel").hidden = true;
    busy(button, T.generating);
    const body = {
      scan_id: current.scanId,
      output_path: val("#output-path"),
      file_split_rule: val("#split-rule"),
      naming_convention: val("#naming"),
      import_script_format: val("#import-format"),
      generate_readme: $("#readme").checked,
      selected: JSON.parse(sessionStorage.getItem("selection:" + current.scanId) || "[]"),
    };
    try {
      const data = await api("POST", "/api/generate", body);
      if (generation !== current) { return; }
      current.id = data.generation_id;
      notify("success", T.generation_done);
      $("#generation-result").innerHTML = `
        <button type="button" id="download-btn">${esc(T.download)}</button>
        <h2>${esc(T.preview)}</h2>
        <pre><code>${esc(data.preview)}</code></pre>`;
      $("#download-btn").addEventListener("click", downloadArtifact);
      await showTerraformPanel();
    } catch (error) {
      notify("error", `${T.generation_failed}: ${error.message}`);
    } finally {
      idle(button, T.generate);
    }
  }

  function downloadArtifact() {
    const link = document.createElement("a");
    link.href = "/api/generate/" + generation.id + "/download";
    link.download = "terraform-output.zip";
    document.body.appendChild(link);
    link.click();
    link.remove();
    notify("success", T.download_done);
  }

  async function showTerraformPanel() {
    $("#terraform-panel").hidden = false;
    $("#tf-results").innerHTML = "";
    const info = await api("GET", "/api/terraform/version");
    if (info.available) {
      $("#tf-status").innerHTML = `<span class="tf-version">Terraform v${esc(info.version)}</span>`;
      $("#validate-btn").hidden = false;
    } else {
      $("#tf-status").innerHTML = `<span class="tf-missing">${esc(T.terraform_missing)}</span>`;
      $("#validate-btn").hidden = true;
    }
  }

  async function runValidation() {
    const button = $("#validate-btn");
    if (button.disabled) { return; }
    clearNotes();
    const results = $("#tf-results");
    results.innerHTML = "";
    busy(button, T.validating);
    try {
      const data = await api("POST", "/api/terraform/validate", {generation_id: generation.id});
      const errors = data.errors.length
        ? `<ul class="tf-errors">${data.errors.map((e) => `<li>${esc(e)}</li>`).join("")}</ul>` : "";
      results.innerHTML = `
        <div class="tf-result"><span class="badge">${esc(data.valid ? T.validation_passed : T.validation_failed)}</span>${errors}</div>
        <div class="tf-result" id="format-result"></div>`;
      renderFormatState(data.formatted);
    } catch (error) {
      notify("error", `${T.validation_error}: ${error.message}`);
    } finally {
      idle(button, T.validate);
    }
  }

  function renderFormatState(formatted) {
    const box = $("#format-result");
    box.innerHTML = `<span class="badge">${esc(formatted ? T.format_clean : T.format_dirty)}</span>` +
      (formatted ? "" : ` <button type="button" id="format-btn">${esc(T.format_apply)}</button>`);
    if (!formatted) { $("#format-btn").addEventListener("click", applyFormat); }
  }

  async function applyFormat() {
    const button = $("#format-btn");
    if (button.disabled) { return; }
    clearNotes();
    busy(button, T.formatting);
    try {
      await api("POST", "/api/terraform/format", {generation_id: generation.id});
      renderFormatState(true);
    } catch (error) {
      notify("error", `${T.format_error}: ${error.message}`);
      idle(button, T.format_apply);
    }
  }

  // ---- templates -------------------------------------------------------------
  async function renderTemplates() {
    window.monaco = {editor: {getModels: () => (editor ? [editor.model] : [])}};
    app.innerHTML = `
      <div class="templates">
        <aside><h2>${esc(T.template_list)}</h2><ul id="template-list"></ul></aside>
        <section id="template-detail"></section>
      </div>`;
    const data = await api("GET", "/api/templates");
    $("#template-list").innerHTML = data.templates.map(
      (t) => `<li><button type="button" data-kind="${esc(t.kind)}">${esc(t.path)}</button></li>`).join("");
    app.querySelectorAll("[data-kind]").forEach((b) => b.addEventListener("click", () => openTemplate(b.dataset.kind)));
  }

  async function openTemplate(kind) {
    clearNotes();
    editor = null;
    const detail = $("#template-detail");
    detail.innerHTML = "";
    const data = await api("GET", "/api/templates/" + kind);
    detail.innerHTML = `
      <h3>${esc(data.path)}</h3>
      <div class="monaco-editor"><textarea id="template-editor" rows="14" cols="80" aria-label="${esc(T.editor)}"></textarea></div>
      <div id="template-validation"></div>
      <div class="actions">
        <button type="button" id="preview-btn">${esc(T.preview)}</button>
        <button type="button" id="save-btn">${esc(T.save)}</button>
        <span id="restore-slot"></span>
      </div>
      <div id="template-preview"></div>`;
    const textarea = $("#template-editor");
    textarea.value = data.content;
    editor = {
      kind: kind,
      timer: null,
      model: {
        getValue: () => textarea.value,
        setValue: (text) => { textarea.value = text; scheduleValidation(); },
      },
    };
    textarea.addEventListener("input", scheduleValidation);
    $("#preview-btn").addEventListener("click", previewTemplate);
    $("#save-btn").addEventListener("click", saveTemplate);
    renderRestore(data.is_custom);
  }

  function scheduleValidation() {
    const current = editor;
    clearTimeout(current.timer);
    current.timer = setTimeout(() => validateTemplate(current), 500);
  }

  async function validateTemplate(current) {
    const data = await api("POST", "/api/templates/validate", {kind: current.kind, content: current.model.getValue()});
    if (editor !== current) { return; }
    $("#template-validation").innerHTML = data.errors.length
      ? `<div class="validation-errors"><strong>${esc(T.validation_errors)} (${data.errors.length})</strong>` +
        `<ul>${data.errors.map((e) => `<li>${esc(e)}</li>`).join("")}</ul></div>`
      : "";
  }

  function renderRestore(isCustom) {
    const slot = $("#restore-slot");
    slot.innerHTML = isCustom ? `<button type="button" id="restore-btn">${esc(T.restore)}</button>` : "";
    if (isCustom) { $("#restore-btn").addEventListener("click", restoreTemplate); }
  }

  async function saveTemplate() {
    const button = $("#save-btn");
    if (button.disabled) { return; }
    const current = editor;
    clearNotes();
    busy(button, T.saving);
    try {
      await api("PUT", "/api/templates/" + current.kind, {content: current.model.getValue()});
      notify("success", T.saved);
      renderRestore(true);
    } catch (error) {
      notify("error", `${T.save_failed}: ${error.message}`);
    } finally {
      idle(button, T.save);
    }
  }

  async function restoreTemplate() {
    clearNotes();
    if (!window.confirm(T.confirm_restore)) { return; }
    const current = editor;
    try {
      const data = await api("DELETE", "/api/templates/" + current.kind);
      clearTimeout(current.timer);
      $("#template-editor").value = data.content;
      $("#template-validation").innerHTML = "";
      renderRestore(false);
      notify("success", T.restored);
    } catch (error) {
      notify("error", `${T.restore_failed}: ${error.message}`);
    }
  }

  async function previewTemplate() {
    const current = editor;
    try {
      const data = await api("POST", "/api/templates/preview", {kind: current.kind, content: current.model.getValue()});
      $("#template-preview").innerHTML = `<h2>${esc(T.preview)}</h2><pre><code>${esc(data.rendered)}</code></pre>`;
    } catch (error) {
      notify("error", `${T.preview_failed}: ${error.message}`);
    }
  }

  // ---- routing ---------------------------------------------------------------
  const ROUTES = [
    [/^\/connection\/?$/, renderConnection],
    [/^\/scan\/?$/, renderScan],
    [/^\/resources\/([^/]+)\/?$/, renderResources],
    [/^\/generate\/([^/]+)\/?$/, renderGenerate],
    [/^\/templates\/?$/, renderTemplates],
  ];

  function route() {
    clearNotes();
    window.monaco = undefined;
    view = null;
    generation = null;
    editor = null;
    for (const [pattern, render] of ROUTES) {
      const match = location.pathname.match(pattern);
      if (match) {
        Promise.resolve(render(...match.slice(1).map(decodeURIComponent)))
          .catch((error) => notify("error", error.message));
        return;
      }
    }
    history.replaceState({}, "", "/connection" + location.search);
    renderConnection();
  }

  window.addEventListener("popstate", route);
  route();
})();
"""


def _row(tab: str, name: str, identifier: str) -> Dict[str, str]:
    return {"id": identifier, "name": name, "identifier": identifier, "type": TERRAFORM_TYPES[tab]}


def _aws_inventory(prefix: str) -> Dict[str, List[Dict[str, str]]]:
    arn = f"arn:aws:iam::{MOCK_AWS_ACCOUNT}"
    users = [f"test-user-{i:02d}" for i in range(1, 24)] + [f"admin-{i:02d}" for i in range(1, 5)]
    groups = ["test-developers", "test-operators", "admins"]
    roles = ["test-lambda-exec", "test-ecs-task", "admin-break-glass"]
    policies = ["test-s3-read", "test-dynamodb-write", "admin-full-access"]

    def keep(name: str) -> bool:
        return not prefix or name.startswith(prefix)

    inventory = {
        "users": [_row("users", n, f"{arn}:user/{n}") for n in users if keep(n)],
        "groups": [_row("groups", n, f"{arn}:group/{n}") for n in groups if keep(n)],
        "roles": [_row("roles", n, f"{arn}:role/{n}") for n in roles if keep(n)],
        "policies": [_row("policies", n, f"{arn}:policy/{n}") for n in policies if keep(n)],
    }
    policy_arn = f"{arn}:policy/test-s3-read"
    inventory["attachments"] = [
        _row("attachments", f"{user['name']} -> test-s3-read", f"{user['identifier']}|{policy_arn}")
        for user in inventory["users"][:5]
    ]
    inventory["cleanup"] = [
        _row("cleanup", f"{user['name']} access key", f"AKIAMOCK{index:012d}")
        for index, user in enumerate(inventory["users"][:2])
    ]
    return inventory


def _azure_inventory(subscription: str, resource_group: str) -> Dict[str, List[Dict[str, str]]]:
    scope = f"/subscriptions/{subscription}"
    if resource_group:
        scope += f"/resourceGroups/{resource_group}"
    definitions = ["Reader", "Contributor", "Owner", "test-custom-operator"]
    principals = [f"test-sp-{i:02d}" for i in range(1, 7)]
    return {
        "role_assignments": [
            _row(
                "role_assignments",
                f"{principal} / {definition}",
                f"{scope}/providers/Microsoft.Authorization/roleAssignments/{principal}-{definition.lower()}",
            )
            for principal in principals
            for definition in definitions[:2]
        ],
        "role_definitions": [
            _row(
                "role_definitions",
                definition,
                f"/subscriptions/{subscription}/providers/Microsoft.Authorization/roleDefinitions/{definition.lower()}",
            )
            for definition in definitions
        ],
    }


def _dependencies(provider: str, inventory: Dict[str, List[Dict[str, str]]]) -> Dict[str, list]:
    if provider == "aws":
        sources = inventory["users"][:6]
        middles = inventory["groups"]
        targets = inventory["policies"]
    else:
        sources = inventory["role_assignments"][:6]
        middles = []
        targets = inventory["role_definitions"]

    nodes = [{"id": row["id"], "label": row["name"]} for row in sources + middles + targets]
    edges = []
    for index, row in enumerate(sources):
        hop = middles or targets
        if hop:
            edges.append({"source": row["id"], "target": hop[index % len(hop)]["id"]})
    for index, row in enumerate(middles):
        if targets:
            edges.append({"source": row["id"], "target": targets[index % len(targets)]["id"]})
    return {"nodes": nodes, "edges": edges}


def _filter_rows(rows: List[Dict[str, str]], query: str, mode: str) -> List[Dict[str, str]]:
    if not query:
        return rows
    if mode == "advanced":
        match = _QUERY_PATTERN.match(query)
        if not match:
            raise ValueError(f"unsupported query: {query}")
        field, operator, value = match.group(1).lower(), match.group(2).upper(), match.group(3)
        if operator == "==":
            return [row for row in rows if row[field] == value]
        if operator == "!=":
            return [row for row in rows if row[field] != value]
        return [row for row in rows if fnmatch.fnmatchcase(row[field], value)]
    needle = query.lower()
    return [row for row in rows if needle in row["name"].lower() or needle in row["identifier"].lower()]


def _resource_label(name: str, convention: str) -> str:
    if convention == "original":
        return name
    parts = [part.lower() for part in re.split(r"[^A-Za-z0-9]+", name) if part]
    return ("-" if convention == "kebab-case" else "_").join(parts)


def _template_path(kind: str) -> str:
    provider = "azure" if kind.startswith("role_") else "aws"
    return f"{provider}/{kind}.tf.j2"


def _template_errors(content: str) -> List[str]:
    if not content.strip():
        return ["template is empty"]
    try:
        _TEMPLATE_ENV.parse(content)
    except TemplateSyntaxError as exc:
        return [f"line {exc.lineno}: {exc.message}"]
    return []


def _zip_bytes(files: Dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def _detect_lang() -> str:
    lang = request.args.get("lang")
    if lang in TEXTS:
        return lang
    best = request.accept_languages.best_match(["en", "en-US", "ja", "ja-JP"], default="en")
    return best[:2]


def create_mock_app(
    *,
    terraform_version: Optional[str] = "1.6.6",
    needs_format: bool = True,
    scan_seconds: float = 1.5,
    generation_seconds: float = 0.8,
    connection_seconds: float = 0.3,
) -> Flask:
    """Create the mock application with fresh in-memory state.

    ``terraform_version=None`` simulates a host without the Terraform CLI;
    ``needs_format`` makes the first format check report unformatted files.
    """
    app = Flask(__name__)
    app.config["TESTING"] = True

    lock = threading.Lock()
    scans: Dict[str, Dict[str, Any]] = {}
    generations: Dict[str, Dict[str, Any]] = {}
    custom_templates: Dict[str, str] = {}

    def _error(message: str, status: int = 400):
        return jsonify({"success": False, "message": message}), status

    def _payload() -> Dict[str, Any]:
        return request.get_json(silent=True) or {}

    def _scan_status(scan: Dict[str, Any]) -> Dict[str, Any]:
        elapsed = time.monotonic() - scan["started"]
        if scan["error"] and elapsed >= min(0.4, scan_seconds):
            status, progress = "failed", int(min(elapsed / scan_seconds, 1.0) * 100)
        elif scan["error"] or elapsed < scan_seconds:
            status, progress = "running", int(min(elapsed / scan_seconds, 0.99) * 100)
        else:
            status, progress = "completed", 100
        return {
            "scan_id": scan["id"],
            "provider": scan["provider"],
            "status": status,
            "progress": progress,
            "message": scan["error"] if status == "failed" else "",
            "counts": {tab: len(rows) for tab, rows in scan["inventory"].items()},
        }

    def _new_scan(provider: str, inventory: Dict[str, list], error: str = "") -> str:
        scan_id = secrets.token_hex(6)
        with lock:
            scans[scan_id] = {
                "id": scan_id,
                "provider": provider,
                "started": time.monotonic(),
                "inventory": inventory,
                "error": error,
            }
        return scan_id

    # ---- screens ---------------------------------------------------------------
    @app.route("/")
    def index():
        return redirect("/connection")

    @app.route("/connection")
    @app.route("/scan")
    @app.route("/templates")
    @app.route("/resources/<scan_id>")
    @app.route("/generate/<scan_id>")
    def shell(scan_id: Optional[str] = None):
        lang = _detect_lang()
        return render_template_string(_SHELL, lang=lang, texts=TEXTS[lang], css=_CSS, script=_SCRIPT)

    # ---- connection ------------------------------------------------------------
    @app.route("/api/connection/aws", methods=["POST"])
    def connection_aws():
        data = _payload()
        time.sleep(connection_seconds)
        profile = data.get("profile") or MOCK_AWS_PROFILE
        if profile != MOCK_AWS_PROFILE:
            return _error(f"profile '{profile}' could not be found")
        role_arn = data.get("assume_role_arn") or ""
        if role_arn and not _ARN_PATTERN.match(role_arn):
            return _error(f"'{role_arn}' is not a valid role ARN")
        identity = role_arn or f"arn:aws:iam::{MOCK_AWS_ACCOUNT}:user/e2e"
        return jsonify({"success": True, "identity": identity, "account": MOCK_AWS_ACCOUNT})

    @app.route("/api/connection/azure", methods=["POST"])
    def connection_azure():
        data = _payload()
        time.sleep(connection_seconds)
        if data.get("auth_method") == "az_login":
            return jsonify({"success": True, "identity": "az login (current user)"})
        credentials = (data.get("tenant_id"), data.get("client_id"), data.get("client_secret"))
        if credentials != (MOCK_AZURE_TENANT_ID, MOCK_AZURE_CLIENT_ID, MOCK_AZURE_CLIENT_SECRET):
            return _error("service principal authentication was rejected (AADSTS7000215)")
        return jsonify({"success": True, "identity": f"{MOCK_AZURE_CLIENT_ID}@{MOCK_AZURE_TENANT_ID}"})

    # ---- scan ------------------------------------------------------------------
    @app.route("/api/scan/aws", methods=["POST"])
    def scan_aws():
        data = _payload()
        profile = data.get("profile") or MOCK_AWS_PROFILE
        error = "" if profile == MOCK_AWS_PROFILE else f"profile '{profile}' could not be found"
        inventory = _aws_inventory(data.get("name_prefix") or "")
        return jsonify({"success": True, "scan_id": _new_scan("aws", inventory, error)})

    @app.route("/api/scan/azure", methods=["POST"])
    def scan_azure():
        data = _payload()
        subscription = data.get("subscription") or ""
        if not subscription:
            return _error("subscription is required")
        inventory = _azure_inventory(subscription, data.get("resource_group") or "")
        return jsonify({"success": True, "scan_id": _new_scan("azure", inventory)})

    @app.route("/api/scan/<scan_id>")
    def scan_status(scan_id: str):
        scan = scans.get(scan_id)
        if scan is None:
            return _error(f"scan {scan_id} not found", 404)
        return jsonify(_scan_status(scan))

    # ---- resources -------------------------------------------------------------
    @app.route("/api/resources/<scan_id>")
    def resources(scan_id: str):
        scan = scans.get(scan_id)
        if scan is None:
            return _error(f"scan {scan_id} not found", 404)
        tab = request.args.get("type", "")
        if tab not in scan["inventory"]:
            return _error(f"unknown resource type '{tab}'")
        try:
            rows = _filter_rows(scan["inventory"][tab], request.args.get("query", ""), request.args.get("mode", "simple"))
        except ValueError as exc:
            return _error(str(exc))
        page_size = max(1, request.args.get("page_size", PAGE_SIZE, type=int))
        total_pages = max(1, -(-len(rows) // page_size))
        page = min(max(1, request.args.get("page", 1, type=int)), total_pages)
        start = (page - 1) * page_size
        return jsonify({
            "items": rows[start:start + page_size],
            "ids": [row["id"] for row in rows],
            "total": len(rows),
            "page": page,
            "total_pages": total_pages,
        })

    @app.route("/api/resources/<scan_id>/dependencies")
    def dependencies(scan_id: str):
        scan = scans.get(scan_id)
        if scan is None:
            return _error(f"scan {scan_id} not found", 404)
        return jsonify(_dependencies(scan["provider"], scan["inventory"]))

    # ---- generation ------------------------------------------------------------
    def _render_terraform(scan: Dict[str, Any], options: Dict[str, Any]) -> Dict[str, str]:
        selected = set(options.get("selected") or [])
        every_row = [row for rows in scan["inventory"].values() for row in rows]
        rows = [row for row in every_row if row["id"] in selected]
        if not rows:
            rows = next(iter(scan["inventory"].values()))
        convention = options.get("naming_convention") or "snake_case"
        split = options.get("file_split_rule") or "by_resource_type"

        files: Dict[str, str] = {}
        imports: List[str] = []
        for row in rows:
            label = _resource_label(row["name"], convention)
            block = f'resource "{row["type"]}" "{label}" {{\n  name = "{row["name"]}"\n}}\n'
            if split == "single":
                filename = "main.tf"
            elif split == "by_resource_name":
                filename = f"{label}.tf"
            else:
                filename = f"{row['type']}.tf"
            files[filename] = files.get(filename, "") + block + "\n"
            imports.append(f"terraform import {row['type']}.{label} '{row['id']}'")

        if options.get("import_script_format") == "ps1":
            files["import.ps1"] = "\n".join(imports) + "\n"
        else:
            files["import.sh"] = "#!/bin/sh\nset -e\n" + "\n".join(imports) + "\n"
        if options.get("generate_readme", True):
            files["README.md"] = f"# Terraform output\n\nGenerated from scan {scan['id']} ({len(rows)} resources).\n"
        return files

    @app.route("/api/generate", methods=["POST"])
    def generate():
        data = _payload()
        scan = scans.get(data.get("scan_id", ""))
        if scan is None or _scan_status(scan)["status"] != "completed":
            return _error(f"scan {data.get('scan_id')} is not available", 404)
        time.sleep(generation_seconds)
        files = _render_terraform(scan, data)
        generation_id = secrets.token_hex(6)
        with lock:
            generations[generation_id] = {"files": files, "formatted": not needs_format}
        preview_file = next(name for name in files if name.endswith(".tf"))
        return jsonify({
            "success": True,
            "generation_id": generation_id,
            "files": sorted(files),
            "preview": files[preview_file],
        })

    @app.route("/api/generate/<generation_id>/download")
    def download(generation_id: str):
        generation = generations.get(generation_id)
        if generation is None:
            return _error(f"generation {generation_id} not found", 404)
        return send_file(
            io.BytesIO(_zip_bytes(generation["files"])),
            mimetype="application/zip",
            as_attachment=True,
            download_name=ARTIFACT_NAME,
        )

    # ---- terraform -------------------------------------------------------------
    @app.route("/api/terraform/version")
    def terraform_version_info():
        return jsonify({"available": terraform_version is not None, "version": terraform_version})

    def _generation_or_error():
        if terraform_version is None:
            return None, _error("terraform CLI is not installed", 503)
        generation = generations.get(_payload().get("generation_id") or "")
        if generation is None:
            return None, _error("no generated output to check", 404)
        return generation, None

    @app.route("/api/terraform/validate", methods=["POST"])
    def terraform_validate():
        generation, error = _generation_or_error()
        if error:
            return error
        return jsonify({"valid": True, "errors": [], "formatted": generation["formatted"]})

    @app.route("/api/terraform/format", methods=["POST"])
    def terraform_format():
        generation, error = _generation_or_error()
        if error:
            return error
        with lock:
            generation["formatted"] = True
        return jsonify({"success": True, "formatted": True})

    # ---- templates -------------------------------------------------------------
    def _template_info(kind: str) -> Dict[str, Any]:
        custom = custom_templates.get(kind)
        return {
            "kind": kind,
            "path": _template_path(kind),
            "content": DEFAULT_TEMPLATES[kind] if custom is None else custom,
            "is_custom": custom is not None,
        }

    @app.route("/api/templates")
    def templates():
        return jsonify({"templates": [_template_info(kind) for kind in DEFAULT_TEMPLATES]})

    @app.route("/api/templates/<kind>", methods=["GET", "PUT", "DELETE"])
    def template(kind: str):
        if kind not in DEFAULT_TEMPLATES:
            return _error(f"unknown template '{kind}'", 404)
        if request.method == "PUT":
            content = _payload().get("content", "")
            errors = _template_errors(content)
            if errors:
                return _error(f"{len(errors)} validation error(s): {'; '.join(errors)}")
            with lock:
                custom_templates[kind] = content
        elif request.method == "DELETE":
            with lock:
                custom_templates.pop(kind, None)
        return jsonify(_template_info(kind))

    @app.route("/api/templates/validate", methods=["POST"])
    def template_validate():
        return jsonify({"errors": _template_errors(_payload().get("content", ""))})

    @app.route("/api/templates/preview", methods=["POST"])
    def template_preview():
        content = _payload().get("content", "")
        errors = _template_errors(content)
        if errors:
            return _error("; ".join(errors))
        rendered = _TEMPLATE_ENV.from_string(content).render(**_PREVIEW_CONTEXT)
        return jsonify({"success": True, "rendered": rendered})

    return app
