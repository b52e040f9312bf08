"""
控制台客户端

逐行读取命令发送给服务器，并把收到的快照以文本形式打印出来。
命令：
  sit [座位id]            入座空位或接管离线座位
  deal [13|д]             发牌
  draw                    摸一张牌
  play C5 C6 [x y]        出牌，可选桌面坐标
  move <turnId> x y       移动桌面上的一手牌
  pickup <index> <turnId>...  把若干手牌收回手里 index 处
  sort C1 C2 ...          重新排列手牌
  undo                    撤销自己最后一手
  clear                   清桌
  quit                    退出
"""

import os
import sys
import threading
from typing import Any, Dict, List, Optional

from cardtable.client.network import NetworkClient
from cardtable.shared.constants import DEFAULT_HOST, DEFAULT_PORT, MSG_HEARTBEAT, MSG_UPDATE


def format_update(update: Dict[str, Any]) -> str:
    """把一次快照渲染成几行文本"""
    lines: List[str] = []
    me = update.get("player")
    if me:
        lines.append(f"[我] {me['name']}: {' '.join(me['hand'])}")
    else:
        lines.append("[旁观中]")
    for opp in update.get("opponents", []):
        tag = f" (离线, id={opp['id']})" if "id" in opp else ""
        lines.append(f"  位置{opp['position']} {opp['name']}: {opp['cardCount']} 张{tag}")
    deck = update.get("deck") or {}
    last = f", 底牌 {deck['last']}" if deck.get("last") else ""
    lines.append(f"  牌堆 {deck.get('count', 0)} 张{last}，弃牌区 {update.get('graveyard', 0)} 轮")
    for turn in update.get("round", []):
        lines.append(f"  桌面 [{turn['id']}] 位置{turn['position']}: {' '.join(turn['cards'])}")
    if update.get("lurkers"):
        lines.append(f"  旁观: {', '.join(update['lurkers'])}")
    if update.get("canUndo"):
        lines.append("  (可撤销)")
    return "\n".join(lines)


def run_command(client: NetworkClient, line: str) -> bool:
    """执行一条命令；返回 False 表示退出"""
    parts = line.split()
    if not parts:
        return True
    cmd, args = parts[0].lower(), parts[1:]
    if cmd == "quit":
        return False
    if cmd == "sit":
        client.sit(args[0] if args else None)
    elif cmd == "deal":
        client.deal(args[0] if args else 13)
    elif cmd == "draw":
        client.draw()
    elif cmd == "play":
        coords = _trailing_coords(args)
        if coords:
            client.play(args[:-2], *coords)
        else:
            client.play(args)
    elif cmd == "move" and len(args) == 3:
        coords = _trailing_coords(args)
        if coords:
            client.move_turn(args[0], *coords)
    elif cmd == "pickup" and len(args) >= 2 and args[0].isdigit():
        client.pickup(args[1:], int(args[0]))
    elif cmd == "sort":
        client.rearrange(args)
    elif cmd == "undo":
        client.undo()
    elif cmd == "clear":
        client.new_round()
    else:
        print(f"未知命令: {line}")
    return True


def _trailing_coords(args: List[str]) -> Optional[tuple]:
    if len(args) < 2:
        return None
    try:
        return float(args[-2]), float(args[-1])
    except ValueError:
        return None


def _print_loop(client: NetworkClient) -> None:
    while client.connected:
        msg = client.wait_for(lambda m: m.type != MSG_HEARTBEAT, timeout=1.0)
        if msg is not None and msg.type == MSG_UPDATE:
            print(format_update(msg.data))


def main():
    host = os.environ.get("HOST", DEFAULT_HOST)
    try:
        port = int(os.environ.get("PORT", DEFAULT_PORT))
    except ValueError:
        port = DEFAULT_PORT
    name = sys.argv[1] if len(sys.argv) > 1 else input("名字: ")

    client = NetworkClient(host, port)
    if not client.connect(name):
        sys.exit(1)
    threading.Thread(target=_print_loop, args=(client,), daemon=True).start()
    try:
        for line in sys.stdin:
            if not run_command(client, line):
                break
    except KeyboardInterrupt:
        pass
    finally:
        client.close()


if __name__ == "__main__":
    main()
