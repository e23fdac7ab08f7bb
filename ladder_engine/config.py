"""配置加载模块。

本模块实现从外部配置文件加载计划与运行配置：
- 支持XML格式（主要）
- 支持YAML和JSON格式
- 提供配置数据类，确保类型安全
- 支持默认值和配置验证
- 支持环境变量覆盖

配置层是唯一会对非法参数抛出异常的地方；引擎本身对数值输入从不抛异常。
"""

import os
import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional
from pathlib import Path

import yaml

from .core.types import (
    DRAWDOWN_SCHEDULES, SELL_STEP_OPTIONS, MAX_SELL_LEVELS,
    DEFAULT_GROWTH_PCT_PER_LEVEL, DEFAULT_BUY_TOLERANCE, DEFAULT_SELL_TOLERANCE,
)
from .analysis.alerts import BUY_NEAR_PCT, SELL_NEAR_PCT, FILLED_THRESHOLD
from .core.interfaces import IPlanConfigProvider


CONFIG_ENV_VAR = "LADDER_CONFIG_PATH"


@dataclass
class DataConfig:
    """成交数据配置。"""
    trades_path: str = ""
    plan_id: str = ""


@dataclass
class BuyPlanConfig:
    """买入计划配置。"""
    top_price: float = 0.0
    budget: float = 0.0
    depth_profile: int = 70
    growth_pct_per_level: float = DEFAULT_GROWTH_PCT_PER_LEVEL
    tolerance: float = DEFAULT_BUY_TOLERANCE

    def __post_init__(self):
        """Validate configuration values."""
        if self.depth_profile not in DRAWDOWN_SCHEDULES:
            raise ValueError(
                f"Invalid depth_profile '{self.depth_profile}'. "
                f"Must be one of: {', '.join(str(k) for k in DRAWDOWN_SCHEDULES)}"
            )
        if self.top_price < 0 or self.budget < 0:
            raise ValueError("top_price and budget must be non-negative")


@dataclass
class SellPlanConfig:
    """卖出计划配置。

    baseline_price 为 0 时使用买入计划的计划内平均成本。
    """
    baseline_price: float = 0.0
    step_pct: int = 50
    levels_count: int = 10
    sell_pct_of_remaining: float = 10.0
    tolerance: float = DEFAULT_SELL_TOLERANCE

    def __post_init__(self):
        """Validate configuration values."""
        if self.step_pct not in SELL_STEP_OPTIONS:
            raise ValueError(
                f"Invalid step_pct '{self.step_pct}'. "
                f"Must be one of: {', '.join(str(s) for s in SELL_STEP_OPTIONS)}"
            )
        if not (1 <= self.levels_count <= MAX_SELL_LEVELS):
            raise ValueError(f"levels_count must be between 1 and {MAX_SELL_LEVELS}")
        if not (0 <= self.sell_pct_of_remaining <= 100):
            raise ValueError("sell_pct_of_remaining must be between 0 and 100")


@dataclass
class AlertConfig:
    """告警配置。"""
    buy_near_pct: float = BUY_NEAR_PCT
    sell_near_pct: float = SELL_NEAR_PCT
    filled_threshold: float = FILLED_THRESHOLD


@dataclass
class LoggingConfig:
    """日志配置。"""
    debug: bool = False
    log_file: str = ""
    level: str = "INFO"
    console: bool = True  # 是否在终端打印日志

    def __post_init__(self):
        """Validate configuration values."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(
                f"Invalid log level '{self.level}'. "
                f"Must be one of: {', '.join(sorted(valid_levels))}"
            )
        self.level = self.level.upper()


@dataclass
class PlannerConfig:
    """完整的计划配置。"""
    data: DataConfig = field(default_factory=DataConfig)
    buy: BuyPlanConfig = field(default_factory=BuyPlanConfig)
    sell: SellPlanConfig = field(default_factory=SellPlanConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigPlanProvider(IPlanConfigProvider):
    """以配置文件中的计划参数作为计划数据源。

    data.plan_id 为空时对任意计划返回同一组参数。
    """

    def __init__(self, config: PlannerConfig):
        self.config = config

    def _matches(self, plan_id: str) -> bool:
        configured = str(self.config.data.plan_id)
        return configured == "" or str(plan_id) == configured

    def get_buy_plan(self, plan_id: str) -> Optional[dict]:
        if not self._matches(plan_id):
            return None
        return asdict(self.config.buy)

    def get_sell_plan(self, plan_id: str) -> Optional[dict]:
        if not self._matches(plan_id):
            return None
        return asdict(self.config.sell)


def _dict_to_dataclass(data_class, data: Dict[str, Any]):
    """将字典转换为数据类实例（忽略未知字段）。"""
    if data is None:
        return data_class()

    field_names = {f.name for f in data_class.__dataclass_fields__.values()}
    filtered_data = {k: v for k, v in data.items() if k in field_names}
    return data_class(**filtered_data)


def load_config(config_path: str = None) -> PlannerConfig:
    """加载配置文件。

    支持XML、YAML和JSON格式。如果配置文件不存在，返回默认配置。

    Args:
        config_path: 配置文件路径。如果为None，按以下顺序查找：
                    1. 环境变量 LADDER_CONFIG_PATH
                    2. ./config.xml
                    3. ./config.yaml / ./config.yml
                    4. ./config.json
                    5. 默认配置

    Returns:
        PlannerConfig实例

    Raises:
        ValueError: 配置文件格式不支持或内容非法
        FileNotFoundError: 指定的配置文件不存在
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR)

    if config_path is None:
        for path in ["config.xml", "config.yaml", "config.yml", "config.json"]:
            if os.path.exists(path):
                config_path = path
                break

    if config_path is None:
        return PlannerConfig()
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    file_ext = Path(config_path).suffix.lower()

    if file_ext == ".xml":
        raw_config = _load_xml_config(config_path)
    elif file_ext in [".yaml", ".yml"]:
        with open(config_path, "r", encoding="utf-8") as f:
            try:
                raw_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"YAML parsing error in {config_path}: {e}") from e
    elif file_ext == ".json":
        with open(config_path, "r", encoding="utf-8") as f:
            try:
                raw_config = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"JSON parsing error in {config_path}: {e}") from e
    else:
        raise ValueError(f"Unsupported configuration format: {file_ext}")

    if raw_config is None:
        return PlannerConfig()

    return _parse_config(raw_config)


def _load_xml_config(config_path: str) -> Dict[str, Any]:
    """从XML文件加载配置。

    注意：配置文件应该来自可信源。

    Raises:
        ValueError: XML解析错误
    """
    try:
        tree = ET.parse(config_path)
    except ET.ParseError as e:
        raise ValueError(f"XML parsing error in {config_path}: {e}") from e
    return _xml_element_to_dict(tree.getroot())


def _xml_element_to_dict(element: ET.Element) -> Dict[str, Any]:
    result = {}
    for child in element:
        # 跳过注释和处理指令（它们的tag是可调用的）
        if callable(child.tag):
            continue

        if len(child) > 0:
            result[child.tag] = _xml_element_to_dict(child)
        else:
            text = child.text.strip() if child.text else ""
            result[child.tag] = _convert_xml_value(text)
    return result


def _convert_xml_value(value: str) -> Any:
    """将XML文本值转换为适当的Python类型。"""
    if value == "":
        return ""

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass
    else:
        try:
            return int(value)
        except ValueError:
            pass

    return value


def _parse_config(raw_config: Dict[str, Any]) -> PlannerConfig:
    """解析原始配置字典。"""
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration root must be a mapping")

    return PlannerConfig(
        data=_dict_to_dataclass(DataConfig, raw_config.get("data")),
        buy=_dict_to_dataclass(BuyPlanConfig, raw_config.get("buy")),
        sell=_dict_to_dataclass(SellPlanConfig, raw_config.get("sell")),
        alerts=_dict_to_dataclass(AlertConfig, raw_config.get("alerts")),
        logging=_dict_to_dataclass(LoggingConfig, raw_config.get("logging")),
    )


def save_config(config: PlannerConfig, config_path: str) -> None:
    """保存配置到文件。

    Raises:
        ValueError: 配置文件格式不支持
    """
    file_ext = Path(config_path).suffix.lower()
    config_dict = asdict(config)

    if file_ext == ".xml":
        _save_xml_config(config_dict, config_path)
    elif file_ext in [".yaml", ".yml"]:
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False, allow_unicode=True)
    elif file_ext == ".json":
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config_dict, f, indent=2, ensure_ascii=False)
    else:
        raise ValueError(f"Unsupported configuration format: {file_ext}")


def _save_xml_config(config_dict: Dict[str, Any], config_path: str) -> None:
    root = ET.Element("config")
    _dict_to_xml_element(config_dict, root)
    _indent_xml(root)

    tree = ET.ElementTree(root)
    with open(config_path, "wb") as f:
        tree.write(f, encoding="utf-8", xml_declaration=True)


def _dict_to_xml_element(data: Dict[str, Any], parent: ET.Element) -> None:
    for key, value in data.items():
        child = ET.SubElement(parent, key)
        if isinstance(value, dict):
            _dict_to_xml_element(value, child)
        elif isinstance(value, bool):
            child.text = "true" if value else "false"
        else:
            child.text = str(value)


def _indent_xml(elem: ET.Element, level: int = 0) -> None:
    """格式化XML输出，添加缩进。"""
    indent = "\n" + "    " * level
    if len(elem):
        if not elem.text or not elem.text.strip():
            elem.text = indent + "    "
        if not elem.tail or not elem.tail.strip():
            elem.tail = indent
        for child in elem:
            _indent_xml(child, level + 1)
        if not child.tail or not child.tail.strip():
            child.tail = indent
    else:
        if level and (not elem.tail or not elem.tail.strip()):
            elem.tail = indent


def get_default_config() -> PlannerConfig:
    return PlannerConfig()


def print_config(config: PlannerConfig) -> None:
    """打印配置信息。"""
    print("\n" + "=" * 60)
    print("Ladder Planner Configuration")
    print("=" * 60)

    print("\n[Data]")
    print(f"  trades_path: {config.data.trades_path or '(not set)'}")
    print(f"  plan_id: {config.data.plan_id or '(any)'}")

    print("\n[Buy Plan]")
    print(f"  top_price: {config.buy.top_price}")
    print(f"  budget: {config.buy.budget}")
    print(f"  depth_profile: {config.buy.depth_profile}")
    print(f"  growth_pct_per_level: {config.buy.growth_pct_per_level}")
    print(f"  tolerance: {config.buy.tolerance}")

    print("\n[Sell Plan]")
    print(f"  baseline_price: {config.sell.baseline_price or '(on-plan average)'}")
    print(f"  step_pct: {config.sell.step_pct}")
    print(f"  levels_count: {config.sell.levels_count}")
    print(f"  sell_pct_of_remaining: {config.sell.sell_pct_of_remaining}")
    print(f"  tolerance: {config.sell.tolerance}")

    print("\n[Alerts]")
    print(f"  buy_near_pct: {config.alerts.buy_near_pct}")
    print(f"  sell_near_pct: {config.alerts.sell_near_pct}")
    print(f"  filled_threshold: {config.alerts.filled_threshold}")

    print("\n[Logging]")
    print(f"  debug: {config.logging.debug}")
    print(f"  log_file: {config.logging.log_file or '(not set)'}")
    print(f"  level: {config.logging.level}")
    print(f"  console: {config.logging.console}")

    print("=" * 60)
