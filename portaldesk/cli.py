#!/usr/bin/env python3
"""
PortalDesk 命令行工具

基于 click 框架的统一命令行接口，提供启动界面、配置管理和标签页状态管理功能。
"""

import sys
from typing import Optional

import click
import yaml
from colorama import init, Fore, Style

from . import __version__
from .utils.global_vars import get_config_manager
from .base.workspace import ViewConfigError
from .workspace.manager import TabStateManager, default_view_registry

# 初始化colorama，支持跨平台彩色输出
init(autoreset=True)


def print_success(message: str):
    """打印成功信息"""
    click.echo(f"{Fore.GREEN}✓ {message}{Style.RESET_ALL}")


def print_error(message: str):
    """打印错误信息"""
    click.echo(f"{Fore.RED}✗ {message}{Style.RESET_ALL}")


def print_warning(message: str):
    """打印警告信息"""
    click.echo(f"{Fore.YELLOW}⚠ {message}{Style.RESET_ALL}")


def print_info(message: str):
    """打印信息"""
    click.echo(f"{Fore.CYAN}ℹ {message}{Style.RESET_ALL}")


def build_state_manager(scope: Optional[str]) -> TabStateManager:
    """按配置创建标签页状态管理器"""
    workspace = get_config_manager().get_workspace_config()
    return TabStateManager(
        storage_key=workspace['storage_key'],
        scope=scope or workspace['storage_scope'],
        database_name=workspace['database_name'],
    )


@click.group()
@click.version_option(version=__version__, prog_name='PortalDesk CLI')
def cli():
    """
    PortalDesk 命令行工具

    提供界面启动、配置管理、标签页状态管理的统一命令行接口。
    """
    pass


# ================== 界面 ==================

@cli.command()
@click.option('--max-tabs', type=int, help='最多同时打开的标签页数量（覆盖配置）')
@click.option('--no-persist', is_flag=True, help='不恢复也不保存标签页状态')
@click.option('--scope', help='标签页状态存储作用域（覆盖配置）')
def run(max_tabs: Optional[int], no_persist: bool, scope: Optional[str]):
    """启动 PortalDesk 终端界面"""
    if max_tabs is not None and max_tabs < 1:
        print_error("--max-tabs 必须大于等于 1")
        sys.exit(2)

    # textual 只在启动界面时导入
    from .workspace.workspace_app import create_app

    app = create_app(
        max_tabs=max_tabs,
        persist=False if no_persist else None,
        scope=scope,
    )
    app.run()


# ================== 配置管理 ==================

@cli.group('config')
def config_cmd():
    """配置管理命令"""
    pass


@config_cmd.command('show')
def config_show():
    """显示当前生效的配置"""
    config_manager = get_config_manager()
    summary = config_manager.get_config_summary()

    print_info(f"配置目录: {summary['config_dir']}")
    if summary['config_exists']:
        print_success(f"配置文件: {summary['config_file']}")
    else:
        print_warning(f"配置文件不存在，使用模板或默认值: {summary['config_file']}")

    for title, values in (("Application", config_manager.get_application_config()),
                          ("Workspace", config_manager.get_workspace_config())):
        click.echo(f"\n{Fore.CYAN}[{title}]{Style.RESET_ALL}")
        for key, value in values.items():
            click.echo(f"  {key}: {value}")

    if summary['env_overrides']:
        click.echo(f"\n{Fore.YELLOW}环境变量覆盖:{Style.RESET_ALL}")
        for name in summary['env_overrides']:
            click.echo(f"  • {name}")


@config_cmd.command('validate')
def config_validate():
    """验证配置文件完整性"""
    try:
        config_manager = get_config_manager()
        result = config_manager.validate_config()

        print_info("配置验证结果:")
        click.echo("=" * 50)

        if result.is_valid:
            print_success("配置验证通过")
        else:
            print_error("配置验证失败")

        if result.errors:
            click.echo(f"\n{Fore.RED}错误 ({len(result.errors)}):{Style.RESET_ALL}")
            for error in result.errors:
                click.echo(f"  • {error}")

        if result.warnings:
            click.echo(f"\n{Fore.YELLOW}警告 ({len(result.warnings)}):{Style.RESET_ALL}")
            for warning in result.warnings:
                click.echo(f"  • {warning}")

        # 视图覆盖文件同样在启动时校验
        try:
            default_view_registry().with_overrides(config_manager.load_view_overrides())
        except ViewConfigError as e:
            print_error(f"视图配置无效: {e}")
            sys.exit(1)

        sys.exit(0 if result.is_valid else 1)

    except (OSError, ValueError, yaml.YAMLError) as e:
        print_error(f"配置验证失败: {e}")
        sys.exit(1)


# ================== 标签页状态 ==================

@cli.group()
def state():
    """标签页状态管理命令"""
    pass


@state.command('show')
@click.option('--scope', help='存储作用域（默认使用配置）')
def state_show(scope: Optional[str]):
    """显示保存的标签页状态"""
    info = build_state_manager(scope).get_state_info()

    print_info(f"存储键: {info['config_key']}")
    if not info['has_saved_state']:
        print_warning("没有保存的标签页状态")
        return

    click.echo(f"  版本: {info['version']}")
    click.echo(f"  保存时间: {info['save_time']}")
    click.echo(f"  标签页数量: {info['tab_count']}")
    click.echo(f"  激活标签页: {info['active_tab_id'] or '-'}")
    for index, tab_id in enumerate(info['tab_order'], 1):
        marker = f"{Fore.GREEN}*{Style.RESET_ALL}" if tab_id == info['active_tab_id'] else " "
        click.echo(f"  {marker} {index}. {tab_id}")


@state.command('clear')
@click.option('--scope', help='存储作用域（默认使用配置）')
def state_clear(scope: Optional[str]):
    """清除保存的标签页状态"""
    state_manager = build_state_manager(scope)
    if state_manager.clear():
        print_success(f"已清除标签页状态: {state_manager.config_key}")
    else:
        print_error(f"清除标签页状态失败: {state_manager.config_key}")
        sys.exit(1)


def main():
    """命令行入口"""
    cli()


if __name__ == '__main__':
    main()
